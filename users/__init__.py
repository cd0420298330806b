"""Users application package.

Contains the custom user model, candidate and HR profiles, the forms
that validate registration and profile payloads and the JSON views for
session authentication and profile management.
"""
