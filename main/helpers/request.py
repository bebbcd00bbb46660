import json

from main.helpers.response import APIResponse


def parse_json_body(request):
    """Returns (data, error_response); exactly one of them is None."""
    data = getattr(request, 'data', None)
    if isinstance(data, dict):
        return data, None

    try:
        data = json.loads(request.body) if request.body else {}
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None, APIResponse.error(message='Invalid JSON body')

    if not isinstance(data, dict):
        return None, APIResponse.error(message='JSON body must be an object')
    return data, None


def missing_fields(data, required):
    return [field for field in required if data.get(field) in (None, '')]
