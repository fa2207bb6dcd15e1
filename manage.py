from flask.cli import FlaskGroup

from okto_portal import create_app

# Exposes the app's CLI: `python manage.py db upgrade`, `python manage.py reconcile-credits`, ...
cli = FlaskGroup(create_app=create_app)

if __name__ == '__main__':
    cli()
