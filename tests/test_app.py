"""
Application-level behavior: envelopes for framework errors.
"""


def test_index(client):
    assert client.get('/').status_code == 200


def test_unknown_route_uses_envelope(client):
    resp = client.get('/nowhere')
    assert resp.status_code == 404
    assert resp.json == {'status': 404, 'message': 'Resource not found', 'data': None}


def test_wrong_method_uses_envelope(client):
    resp = client.delete('/products')
    assert resp.status_code == 405
    assert resp.json['status'] == 405


def test_oversized_upload_is_rejected(app, client, buyer):
    _, headers = buyer
    app.config['MAX_CONTENT_LENGTH'] = 1024
    resp = client.post(
        '/me-profile/picture',
        data=b'x' * 4096,
        headers={**headers, 'Content-Type': 'multipart/form-data; boundary=abc'}
    )
    assert resp.status_code == 413
    assert resp.json['status'] == 413
