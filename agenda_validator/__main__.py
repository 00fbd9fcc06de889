from .cli import app

app(prog_name="validate-agenda-metadata")
