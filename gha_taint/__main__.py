from gha_taint.cli import cli

cli()
