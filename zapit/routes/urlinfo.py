import json
import logging
import socket

from flask import Blueprint, Response, current_app, request

from ..config import CONTENT_TYPE, ENDPOINT
from ..exceptions import LifecycleError, SerializationError
from ..normalizer import decode_request_target

bp = Blueprint('urlinfo', __name__)

_LOG = logging.getLogger('zapit.urlinfo')
_HOSTNAME = socket.gethostname()


def json_response(payload, status: int = 200) -> Response:
    try:
        body = json.dumps(payload)
    except (TypeError, ValueError) as e:
        raise SerializationError(f'cannot encode response: {e}') from e
    return Response(body, status=status, content_type=CONTENT_TYPE)


def get_scanner():
    scanner = current_app.extensions.get('zapit.scanner')
    if scanner is None:
        raise LifecycleError('scanner not initialized')
    return scanner


def _request_target_path() -> bytes:
    # werkzeug decodes PATH_INFO with errors='replace'; the raw target keeps the original bytes
    environ = request.environ
    target = environ.get('RAW_URI') or environ.get('REQUEST_URI')
    if target and target.startswith('/'):
        return target.encode('latin-1').partition(b'?')[0].partition(b'#')[0]
    # PATH_INFO is already decoded once, so escape '%' to keep the second pass a no-op
    path = environ.get('SCRIPT_NAME', '') + environ.get('PATH_INFO', '')
    return path.encode('latin-1').replace(b'%', b'%25')


def raw_url_from_request() -> str:
    """Everything after the route prefix, plus the query string if present.

    Raises MalformedURLError when the target is not valid UTF-8.
    """
    url = decode_request_target(_request_target_path(), request.query_string)
    prefix = request.script_root + ENDPOINT
    return url[len(prefix):] if url.startswith(prefix) else ''


@bp.route(ENDPOINT, defaults={'raw_url': ''}, methods=['GET'])
@bp.route(f'{ENDPOINT}<path:raw_url>', methods=['GET'])
def url_info(raw_url):
    _LOG.info('[%s]: GET %s', _HOSTNAME, request.full_path if request.query_string else request.path)
    result = get_scanner().evaluate(raw_url_from_request())
    resp = json_response(result.to_response())
    _LOG.info('%s', resp.get_data(as_text=True))
    return resp
