"""Allow ``python -m smartlens.cli`` execution."""

from smartlens.cli.ingest import main

main()
