from oorbforms.cli import cli

cli()
