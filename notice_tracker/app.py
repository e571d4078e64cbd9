"""Flask HTTP API around the notice store."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List

from flask import Flask, jsonify, request

from .models import NoticeCandidate
from .store import NoticeStore
from .timeutil import utc_now_iso

LOGGER = logging.getLogger(__name__)

API_VERSION = "2.1.0"

FetchNotices = Callable[[], List[NoticeCandidate]]


def _error_response(message: str, status_code: int = 500, **extra):
    body = {"status": "error", "message": message}
    body.update(extra)
    return jsonify(body), status_code


def create_app(store: NoticeStore, fetch_notices: FetchNotices) -> Flask:
    """Build the Flask app for an already constructed store and fetcher."""
    app = Flask(__name__)
    app.json.sort_keys = False

    @app.route("/api/notices")
    def get_notices():
        """Fetch the source, store unseen notices and return them."""
        try:
            current = fetch_notices()
            added = store.merge_new(current)
            saved_count = store.count()
            last_update = store.last_update()
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Scraping error")
            return _error_response(str(exc))

        new_count = len(added)
        return jsonify({
            "status": "success",
            "total_count": len(current),
            "saved_count": saved_count,
            "new_count": new_count,
            "has_updates": new_count > 0,
            "last_update": last_update,
            "message": (
                f"Found {new_count} new notification(s)"
                if new_count
                else "No new updates available"
            ),
            "data": [notice.to_dict() for notice in added],
        })

    @app.route("/api/notices/all")
    def get_all_notices():
        try:
            notices = store.list_all()
            last_update = store.last_update()
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Error reading saved notices")
            return _error_response(str(exc))

        return jsonify({
            "status": "success",
            "count": len(notices),
            "last_update": last_update,
            "data": [notice.to_dict() for notice in notices],
        })

    @app.route("/api/notices/reset", methods=["POST"])
    def reset_notices():
        try:
            cleared = store.reset()
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Error resetting notices")
            return _error_response(str(exc))

        return jsonify({
            "status": "success",
            "message": f"Cleared {cleared} notices from storage",
        })

    @app.route("/api/stats")
    def get_stats():
        try:
            info = store.info()
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Error getting stats")
            return _error_response(str(exc))

        return jsonify({
            "status": "success",
            "total_notices": info.count,
            "last_update": info.last_update,
            "storage_file": Path(info.location).name,
            "storage_version": info.version,
        })

    @app.route("/api/backup", methods=["POST"])
    def create_backup():
        try:
            backup_file = store.backup()
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Error creating backup")
            return _error_response(str(exc))

        return jsonify({
            "status": "success",
            "message": "Backup created successfully",
            "backup_file": backup_file,
        })

    @app.route("/api/backups")
    def list_backups():
        try:
            names = store.list_backups()
        except Exception as exc:  # noqa: BLE001
            LOGGER.exception("Error listing backups")
            return _error_response(str(exc))

        return jsonify({"status": "success", "count": len(names), "data": names})

    @app.route("/api/restore", methods=["POST"])
    def restore_backup():
        payload = request.get_json(silent=True) or {}
        raw_name = payload.get("backup_file")
        if not isinstance(raw_name, str) or not raw_name.strip():
            return _error_response("backup_file is required", 400)

        # 백업 디렉터리 밖의 파일은 복원하지 않음
        name = Path(raw_name.strip()).name
        if not store.restore(name):
            return _error_response(f"Failed to restore backup {name}")

        return jsonify({
            "status": "success",
            "message": f"Restored {store.count()} notices from {name}",
        })

    @app.route("/api/health")
    def health_check():
        try:
            store.check_storage()
            info = store.info()
        except Exception as exc:  # noqa: BLE001
            LOGGER.error("Health check failed: %s", exc)
            return _error_response("Storage connection failed", error=str(exc))

        return jsonify({
            "status": "success",
            "message": "API is running",
            "timestamp": utc_now_iso(),
            "saved_notices_count": info.count,
            "storage_status": "connected",
            "storage_file": info.location,
        })

    @app.route("/")
    def index():
        return jsonify({
            "message": "Guru Charan College Notices API",
            "version": API_VERSION,
            "features": [
                "Web scraping with change detection",
                "JSON file-based persistent storage",
                "RESTful API endpoints",
                "Backup and restore",
            ],
            "endpoints": {
                "GET /api/notices": "Get new notices",
                "GET /api/notices/all": "Get all saved notices",
                "POST /api/notices/reset": "Reset saved data",
                "GET /api/stats": "Storage statistics",
                "POST /api/backup": "Create backup",
                "GET /api/backups": "List backups",
                "POST /api/restore": "Restore a backup",
                "GET /api/health": "Health check",
            },
            "status": "running",
        })

    return app
