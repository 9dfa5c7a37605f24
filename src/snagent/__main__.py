from snagent.apps.cli.app import app

app()
