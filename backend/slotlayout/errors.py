from flask import jsonify, current_app
from slotlayout.domain.exceptions import SlotLayoutError, ValidationFailed, ConflictError


def register_error_handlers(app):
    @app.errorhandler(SlotLayoutError)
    def handle_slot_layout_error(error):
        body = {
            "error": error.error,
            "message": str(error)
        }

        if isinstance(error, ValidationFailed):
            body["errors"] = error.errors

        if isinstance(error, ConflictError):
            body["action"] = "reload"
            current_app.logger.info("Conflict: %s", error)

        response = jsonify(body)
        response.status_code = error.status_code
        return response
