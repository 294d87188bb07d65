"""
The JSON envelope shared by every response.

.. code-block:: json

   {"status": "success", "message": "...", "data": {...}, "meta": {...}}
   {"status": "error", "message": "...", "data": null,
    "error": {"code": 400, "details": {...}}}

"""

import json
from http import HTTPStatus
from typing import Any, Mapping, Optional

from werkzeug.wrappers import Response

SUCCESS = 'success'
ERROR = 'error'


def success(data: Any = None,
            message: str = 'Request completed successfully',
            meta: Optional[Mapping] = None) -> dict:
    """Build a success envelope. ``meta`` is omitted when empty."""
    body = {'status': SUCCESS, 'message': message, 'data': data}
    if meta:
        body['meta'] = dict(meta)
    return body


def error(message: str, code: int, details: Any = None) -> dict:
    """Build an error envelope."""
    return {
        'status': ERROR,
        'message': message,
        'data': None,
        'error': {'code': int(code), 'details': details}
    }


def json_response(body: dict, status: int = HTTPStatus.OK,
                  headers: Optional[Mapping] = None) -> Response:
    """
    Serialize an envelope into a response.

    Plain werkzeug, so that middleware can answer outside of an application
    context.
    """
    return Response(json.dumps(body), status=int(status),
                    headers=dict(headers or {}),
                    mimetype='application/json')
