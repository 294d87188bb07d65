"""
WSGI middleware for the identity service.

Both classes build on :class:`arxiv.base.middleware.BaseMiddleware`, and are
attached to the app in :func:`identity.factory.create_web_app` with
:func:`arxiv.base.middleware.wrap`.
"""

from http import HTTPStatus
from typing import Callable, Iterable, Optional, Tuple

from werkzeug.exceptions import Unauthorized

from arxiv.base import logging
from arxiv.base.middleware import BaseMiddleware

from . import responses
from .services.exceptions import TokenError
from .services.ratelimit import RateLimiter, get_rate_limiter
from .services.tokens import TokenEngine

logger = logging.getLogger(__name__)

WSGIRequest = Tuple[dict, Callable]


class RateLimitMiddleware(BaseMiddleware):
    """
    Fixed-window rate limiting per client address and path.

    Over the limit, the request never reaches the application: the client
    gets a 429 error envelope with a ``Retry-After`` header. The client is
    identified by ``REMOTE_ADDR`` only; deployments behind a proxy set
    ``PROXY_FIX_X_FOR`` so that :class:`werkzeug.middleware.proxy_fix.ProxyFix`
    rewrites it from the trusted hops.
    """

    _limiter: Optional[RateLimiter] = None

    @property
    def limiter(self) -> RateLimiter:
        if self._limiter is None:
            self._limiter = get_rate_limiter(self.config)
        return self._limiter

    def limit_for(self, path: str) -> Tuple[int, int]:
        """Get the (limit, window) that applies to a path."""
        for suffix, limit in self.config.get('RATE_LIMITS', {}).items():
            if path.rstrip('/').endswith(suffix):
                return limit
        return self.config.get('RATE_LIMIT_DEFAULT', (10, 60))

    def __call__(self, environ: dict, start_response: Callable) -> Iterable:
        if not self.config.get('RATE_LIMIT_ENABLED', True):
            return self.app(environ, start_response)

        path = environ.get('PATH_INFO', '/')
        limit, window = self.limit_for(path)
        client = environ.get('REMOTE_ADDR', 'unknown')
        decision = self.limiter.hit(f'{client}:{path}',
                                    limit, window)
        if decision.allowed:
            return self.app(environ, start_response)

        logger.info('Rate limit exceeded for %s', path)
        body = responses.error(
            'Too many requests, please try again later',
            HTTPStatus.TOO_MANY_REQUESTS,
            {'limit': decision.limit, 'retryAfter': decision.retry_after}
        )
        response = responses.json_response(
            body, HTTPStatus.TOO_MANY_REQUESTS,
            {'Retry-After': str(decision.retry_after)}
        )
        return response(environ, start_response)


class AuthMiddleware(BaseMiddleware):
    """
    Decodes bearer access tokens.

    Before the request is handled by the application, the ``Authorization``
    header is parsed for a ``Bearer`` access token. If the token verifies,
    its :class:`.domain.AccessClaims` are attached to the request as
    ``flask.request.environ['auth']``. If there was no token the value is
    ``None``; if the token was bad it is an :class:`.Unauthorized` exception,
    and routes that require authentication raise it.
    """

    def before(self, environ: dict, start_response: Callable) -> WSGIRequest:
        """Decode and unpack the auth token on the request."""
        environ['auth'] = None
        header = environ.get('HTTP_AUTHORIZATION')
        if header is None:
            return environ, start_response

        parts = header.split()
        if len(parts) != 2 or parts[0].lower() != 'bearer':
            logger.debug('Authorization header malformed')
            environ['auth'] = Unauthorized('Authorization header is malformed')
            return environ, start_response

        try:
            engine = TokenEngine.from_config(self.config)
            environ['auth'] = engine.decode_access(parts[1])
        except TokenError as e:
            logger.debug('Auth token not valid: %s', e)
            environ['auth'] = Unauthorized('Invalid or expired token')
        return environ, start_response
