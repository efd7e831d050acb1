"""SmartLens -- turn photos, scans and PDFs into searchable, analyzed notes."""

__version__ = "0.1.0"
