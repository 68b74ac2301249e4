"""
Development server for a built site.
Serves the build target as static files while the watcher keeps rebuilding it.
"""
import logging
from pathlib import Path
from typing import Optional, Union

from flask import Flask

from locobuild.core.managers.build_record_manager import BuildRecordManager
from locobuild.server.routers.build_api_router import build_api_router
from locobuild.server.routers.site_router import site_router

logger = logging.getLogger(__name__)

API_PREFIX = "/_locobuild"


def create_app(target: Union[str, Path], records: Optional[BuildRecordManager] = None) -> Flask:
    """
    Application factory serving ``target``.
    """
    flask_app = Flask(__name__)
    flask_app.config['SITE_ROOT'] = str(Path(target).resolve())
    flask_app.config['BUILD_RECORDS'] = records or BuildRecordManager()

    flask_app.register_blueprint(build_api_router, url_prefix=API_PREFIX)
    flask_app.register_blueprint(site_router)
    return flask_app


def run_server(target: Union[str, Path], host: str = "127.0.0.1", port: int = 8080,
               records: Optional[BuildRecordManager] = None) -> None:
    """Runs the server on the calling thread until interrupted."""
    app = create_app(target, records)
    logger.info("Dev server running @ http://%s:%s/", host, port)
    app.run(host=host, port=port, debug=False, use_reloader=False)
