"""Command-line tools for SmartLens.

- ``python -m smartlens.cli add-user NAME EMAIL`` -- seed a user row.
- ``python -m smartlens.cli ingest FILE --user-id N`` -- run one document
  through the ingestion pipeline and print the resulting note.

Both commands use the same settings (``.env``) and database as the server.
"""
