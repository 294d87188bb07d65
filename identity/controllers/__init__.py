"""
Request controllers for the identity API.

Controllers validate request parameters, call the
:class:`identity.services.IdentityService` and translate its exceptions into
:mod:`werkzeug.exceptions`. They return ``(data, status, headers)``, leaving
it to the routes to render the response envelope.
"""
