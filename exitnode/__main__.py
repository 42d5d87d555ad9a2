from exitnode.cli import cli

cli()
