"""
Entry point for Flask.

Usage (from project root):

    flask --app run.py seed-departments
    flask --app run.py --debug run

The chain endpoint and ledger addresses come from the environment (see config.py).
"""

from transparency import create_app

# WSGI application object. `flask run` looks for this `app` variable to start the application.
app = create_app()

if __name__ == "__main__":
    # Direct `python run.py` usage (dev only) - use a WSGI server in production.
    app.run(debug=True)
