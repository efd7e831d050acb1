"""MIME type resolution for documents sent to vision-capable LLMs."""

from __future__ import annotations

PDF = "application/pdf"

# Browsers and phones send the non-standard "image/jpg"; LLM APIs reject it.
_ALIASES = {"image/jpg": "image/jpeg", "image/pjpeg": "image/jpeg"}


def sniff_media_type(data: bytes) -> str:
    """Detect the MIME type of a document from its magic bytes.

    PNG starts with: 89 50 4E 47 0D 0A 1A 0A
    PDF starts with: %PDF
    JPEG starts with: FF D8

    Anything else is sent as JPEG; uploads are validated to PNG, JPEG and
    PDF before they reach a provider.
    """
    if data[:8] == b"\x89PNG\r\n\x1a\n":
        return "image/png"
    if data[:4] == b"%PDF":
        return PDF
    return "image/jpeg"


def resolve_media_type(data: bytes, declared: str | None) -> str:
    """Prefer the declared type (normalised); sniff when none was given."""
    if declared:
        declared = declared.lower().strip()
        return _ALIASES.get(declared, declared)
    return sniff_media_type(data)
