from shtest.cli import cli

cli()
