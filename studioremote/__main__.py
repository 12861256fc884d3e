from studioremote.commands import cli

cli()
