"""Flask application factory for the ytsplit web UI."""

import tempfile
from pathlib import Path

from flask import Flask, jsonify

from ytsplit.config import Config, load_config


def create_app(work_dir: Path | None = None, config: Config | None = None) -> Flask:
    app = Flask(__name__)
    app.config["WORK_DIR"] = work_dir or Path(tempfile.mkdtemp(prefix="ytsplit_"))
    app.config["YTSPLIT_CONFIG"] = config or load_config()

    from ytsplit.web.routes import bp
    app.register_blueprint(bp)

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({"error": "Not found"}), 404

    return app
