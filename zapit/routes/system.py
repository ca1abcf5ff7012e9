import socket
import time

from flask import Blueprint, Response, current_app, jsonify

from .. import metrics
from ..config import VERSION

system_bp = Blueprint('system', __name__)

_START_TIME = time.time()


def _storage_ok() -> bool:
    scanner = current_app.extensions.get('zapit.scanner')
    if scanner is None:
        return False
    ping = getattr(scanner.database, 'ping', None)
    return bool(ping()) if ping else True


@system_bp.route('/health', methods=['GET'])
def health():
    uptime = time.time() - _START_TIME
    return jsonify({'status': 'ok', 'uptime_seconds': round(uptime, 2), 'storage': _storage_ok()})


@system_bp.route('/version', methods=['GET'])
def version():
    uptime = time.time() - _START_TIME
    return jsonify({
        'version': VERSION,
        'hostname': socket.gethostname(),
        'uptime_seconds': round(uptime, 2),
    })


@system_bp.route('/metrics/prometheus', methods=['GET'])
def metrics_prometheus():
    return Response(metrics.get_metrics(), content_type=metrics.get_content_type())
