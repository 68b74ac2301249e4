import logging

from flask import Blueprint, current_app, jsonify

from locobuild.exceptions import PersistenceError

logger = logging.getLogger(__name__)

build_api_router = Blueprint('build_api_router', __name__)


@build_api_router.route('/build-record')
def build_record():
    """Returns the build record of the served target directory."""
    records = current_app.config['BUILD_RECORDS']
    try:
        return jsonify(records.read(current_app.config['SITE_ROOT']))
    except PersistenceError as e:
        logger.error("Cannot read build record: %s", e)
        return jsonify({"error": str(e)}), 500
