from app.starter import create_app

app = create_app()
