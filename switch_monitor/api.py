# -*- coding: utf-8 -*-
"""
HTTP surface
GET /status reports the switch state, POST /optin is the Slack slash command
users run to opt in for notifications.
"""

import hmac
import logging
import threading

from flask import Flask, jsonify, request
from werkzeug.serving import make_server

logger = logging.getLogger(__name__)

FORM_MIMETYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def create_app(registry, verification_token):
    """Build the Flask app backed by the given registry"""
    app = Flask(__name__)

    @app.route("/status", methods=["GET"])
    def status():
        return jsonify({"state": registry.get()})

    @app.route("/optin", methods=["POST"])
    def optin():
        if request.content_length and request.mimetype not in FORM_MIMETYPES:
            return "Invalid request format\n", 400

        user_id = request.form.get("user_id", "")
        token = request.form.get("token", "")
        if not user_id or not hmac.compare_digest(token.encode(), verification_token.encode()):
            logger.warning("Rejected opt-in with invalid user or token")
            return "Invalid user or token\n", 401

        if registry.opt_in(user_id):
            logger.info(f"User {user_id} opted in for notifications")

        return jsonify({
            "response_type": "ephemeral",
            "text": f"You have opted in for notifications, <@{user_id}>.",
        })

    return app


class HttpServer:
    """Threaded werkzeug server running in a background thread"""

    def __init__(self, app, host="0.0.0.0", port=8080):
        self.host = host
        self.port = port
        self._server = make_server(host, port, app, threaded=True)
        self._thread = threading.Thread(target=self._server.serve_forever, name="http-server", daemon=True)

    @property
    def server_port(self):
        return self._server.server_port

    def start(self):
        logger.info(f"HTTP server running on port {self.server_port}")
        self._thread.start()

    def shutdown(self):
        if self._thread.is_alive():
            self._server.shutdown()
            self._thread.join()
        self._server.server_close()
        logger.info("HTTP server stopped")
