"""
WSGI entry point for the energy monitor (Elastic Beanstalk looks for
`application`). Run locally with `python application.py`.
"""
from backend.app import app as application

if __name__ == "__main__":
    application.run(host="0.0.0.0", port=5000)
