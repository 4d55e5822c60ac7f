"""
Triggers Package.

Azure Functions HTTP trigger implementations.

HTTP Endpoints:
    GET/DELETE /api/servingURL: Request or tear down a product serving URL
    GET /api/img/{token}: Resolve a serving URL

Trigger instances are created in function_app.py from the built services.
"""

from .http_base import BaseHttpTrigger
from .serving_url import ServingUrlTrigger, REDELIVERY_HEADER
from .serve_image import ServeImageTrigger

__all__ = [
    'BaseHttpTrigger',
    'ServingUrlTrigger',
    'ServeImageTrigger',
    'REDELIVERY_HEADER',
]
