from scalectl.cli import app

app()
