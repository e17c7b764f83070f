"""WSGI entrypoint for deploying the PayEngine backend behind Passenger."""

from payengine.backend.app import create_app

# Passenger expects a module-level variable named ``application``.
application = create_app()
