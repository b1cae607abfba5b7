from flask import jsonify
from slotlayout.domain.slots.registry import list_page_types
from . import v1_bp


@v1_bp.route('/health', methods=['GET'])
def health_check():
    return jsonify({
        "status": "ok",
        "service": "slot-layout-service",
        "page_types": list_page_types(),
    })
