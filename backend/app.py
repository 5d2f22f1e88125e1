from __future__ import annotations

import logging
import os
import re

from flask import Flask, jsonify
from flask_cors import CORS
from dotenv import load_dotenv
from werkzeug.exceptions import RequestEntityTooLarge

from api import bp as api_bp
from financebot.apis import settings
from financebot.apis.error_handler import InvalidInputError, error_response


def create_app() -> Flask:
    load_dotenv()
    logging.basicConfig(
        level=settings.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = settings.MAX_UPLOAD_BYTES * settings.MAX_UPLOAD_FILES

    # Vite dev server
    default_origins = {"http://localhost:5173", "http://127.0.0.1:5173", "http://localhost:3000"}
    env_origins = {origin.strip() for origin in (os.getenv("FRONTEND_ORIGINS") or "").split(",") if origin.strip()}
    ngrok_regex = re.compile(r"^https://[a-z0-9-]+\.ngrok-free\.app$")
    all_origins = list(default_origins.union(env_origins)) + [ngrok_regex]

    CORS(
        app,
        resources={r"/api/*": {"origins": all_origins}},
        supports_credentials=True,
    )

    @app.errorhandler(RequestEntityTooLarge)
    def _too_large(exc):
        payload, status = error_response(InvalidInputError("Upload exceeds the maximum request size", details=str(exc)))
        return jsonify(payload), status

    app.register_blueprint(api_bp)
    logging.getLogger("financebot").info(
        "app.started name=%s version=%s env=%s", settings.APP_NAME, settings.APP_VERSION, settings.APP_ENV
    )
    return app


app = create_app()


if __name__ == "__main__":
    port = int(os.environ.get("PORT", "5000"))
    debug = os.getenv("FLASK_DEBUG", "true").lower() == "true"
    app.run(host="0.0.0.0", port=port, debug=debug)
