"""CV Board project package.

Holds the settings, the root URL configuration, the WSGI entry point and
the small JSON helpers shared by every app's views.
"""
