from app.alghalbi import create_app

app = create_app()
