from flask import jsonify


def success_response(status_code, message, data=None):
    """Uniform envelope: {status, message, data}."""
    status_code = int(status_code)
    return jsonify({
        'status': status_code,
        'message': message,
        'data': data
    }), status_code


def error_response(status_code, message, data=None):
    status_code = int(status_code)
    return jsonify({
        'status': status_code,
        'message': message,
        'data': data
    }), status_code
