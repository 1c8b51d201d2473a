from typedesc.cli import app

app()
