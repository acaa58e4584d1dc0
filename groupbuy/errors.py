"""Failure kinds raised by the order and shop-status core.

The core only exposes the kind of failure; ``register_error_handlers`` turns
them into JSON responses at the blueprint boundary.
"""
from flask import current_app, jsonify


class ShopError(Exception):
    kind = 'error'
    status_code = 500

    def __init__(self, message=None):
        super().__init__(message or self.kind)
        self.message = message or self.kind

    def to_dict(self):
        return {'success': False, 'error': self.kind, 'message': self.message}


class ValidationError(ShopError):
    kind = 'validation_error'
    status_code = 400


class Unauthenticated(ShopError):
    kind = 'unauthenticated'
    status_code = 401


class Forbidden(ShopError):
    kind = 'forbidden'
    status_code = 403


class NotFound(ShopError):
    kind = 'not_found'
    status_code = 404


class StorageError(ShopError):
    kind = 'storage_error'
    status_code = 503


class PartialFailure(ShopError):
    """Multi-step mutation stopped halfway; the rows need manual reconciliation."""
    kind = 'partial_failure'
    status_code = 500

    def __init__(self, message=None, order_id=None):
        super().__init__(message)
        self.order_id = order_id

    def to_dict(self):
        data = super().to_dict()
        data['order_id'] = self.order_id
        return data


def register_error_handlers(blueprint):
    @blueprint.errorhandler(ShopError)
    def handle_shop_error(error):
        if error.status_code >= 500:
            current_app.logger.error("%s: %s", error.kind, error.message)
        return jsonify(error.to_dict()), error.status_code
