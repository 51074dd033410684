from sqlmigrate.cli.app import app

app(prog_name="sqlmigrate")
