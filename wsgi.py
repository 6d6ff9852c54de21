"""
WSGI entry point for the Undercover server.
Used for production deployment with Gunicorn.
"""

from app import app, socketio

if __name__ == "__main__":
    socketio.run(app, host='0.0.0.0', port=8000, debug=True)
else:
    application = app
