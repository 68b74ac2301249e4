import logging
from pathlib import Path

from flask import Blueprint, abort, current_app, send_from_directory

logger = logging.getLogger(__name__)

INDEX_FILE = "index.html"

# Blueprint serving the built site as static files
site_router = Blueprint('site_router', __name__)


@site_router.route('/', defaults={'path': ''})
@site_router.route('/<path:path>')
def serve(path: str):
    """
    Serves a file from the build target. Directory requests fall back to the
    directory's index.html.
    """
    root = Path(current_app.config['SITE_ROOT'])
    candidate = (root / path).resolve()
    try:
        candidate.relative_to(root)
    except ValueError:
        abort(404)

    if candidate.is_dir():
        path = f"{path.rstrip('/')}/{INDEX_FILE}".lstrip('/')
        if not (candidate / INDEX_FILE).is_file():
            logger.debug("No index for %s", candidate)
            abort(404)
    return send_from_directory(str(root), path)
