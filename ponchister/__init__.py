from flask import Flask, request, jsonify
from typing import Optional

from pathlib import Path
from .catalog_client import CatalogClient, CatalogError
from .config import catalog_filters, load_config, save_config, validate_config
from .logging import get_logger, with_context
from .session import AutoGameQueue, ERROR, IDLE
from .storage import DB


def _idle_snapshot():
    return {
        'status': IDLE,
        'error': None,
        'current_song': None,
        'has_more_songs': False,
        'queue_size': 0,
        'position': 0,
    }


def create_app(
    queue: Optional[AutoGameQueue] = None,
    db_path: Optional[str] = None,
    catalog: Optional[CatalogClient] = None,
):
    app = Flask(__name__)
    logger = get_logger(__name__)

    db = DB(Path(db_path)) if db_path else None

    @app.get('/status')
    def status():
        if not queue:
            return jsonify(_idle_snapshot()), 200
        return jsonify(queue.snapshot()), 200

    @app.post('/queue/start')
    def start_queue():
        if not queue:
            return jsonify({**_idle_snapshot(), "reason": "queue not configured"}), 200
        data = request.get_json(force=True, silent=True) or {}
        queue.start_queue()
        # Game-session stats are informational; never block the game on them
        if catalog and queue.status != ERROR:
            cfg = load_config(db) if db else {}
            filters = catalog_filters(cfg)
            try:
                catalog.create_game_session(
                    mode=(data.get('mode') or 'auto'),
                    year_min=filters['min_year'],
                    year_max=filters['max_year'],
                    only_spanish=filters['only_spanish'],
                    timer_enabled=data.get('timer_enabled') is True,
                )
            except CatalogError as e:
                with_context(logger)[0].warning(f"failed to record game session: {e}")
        return jsonify(queue.snapshot()), 200

    @app.post('/queue/advance')
    def advance_queue():
        if not queue:
            return jsonify({**_idle_snapshot(), "reason": "queue not configured"}), 200
        queue.advance_queue()
        return jsonify(queue.snapshot()), 200

    @app.post('/queue/reset')
    def reset_queue():
        if not queue:
            return jsonify({**_idle_snapshot(), "reason": "queue not configured"}), 200
        queue.reset_queue()
        return jsonify(queue.snapshot()), 200

    @app.get('/history')
    def get_history():
        if not queue:
            return jsonify({"ids": [], "reason": "queue not configured"}), 200
        return jsonify({"ids": queue.history.load()}), 200

    @app.delete('/history')
    def clear_history():
        if not queue:
            return jsonify({"cleared": False, "reason": "queue not configured"}), 200
        queue.history.clear()
        return jsonify({"cleared": True}), 200

    @app.get('/config')
    def get_config():
        if not db:
            return jsonify({}), 200
        return jsonify(load_config(db)), 200

    @app.post('/config')
    def set_config():
        if not db:
            return jsonify({"saved": False, "reason": "db not configured"}), 400
        data = request.get_json(force=True, silent=True) or {}
        merged = {**load_config(db), **data}
        try:
            cfg = validate_config(merged)
        except ValueError as e:
            return jsonify({"error": str(e)}), 400
        save_config(db, cfg)
        if queue:
            # Applies from the next start_queue; the running session keeps its order
            queue.soft_usage_limit = cfg['soft_usage_limit']
            queue.history.limit = cfg['history_limit']
        if catalog:
            # An empty URL keeps whatever the client was started with
            catalog.configure(
                base_url=cfg['catalog_url'] or None,
                max_attempts=cfg['fetch_attempts'],
            )
        return jsonify({"saved": True}), 200

    @app.get('/songs/year-bounds')
    def year_bounds():
        bounds = None
        if catalog:
            try:
                bounds = catalog.fetch_year_bounds()
            except CatalogError as e:
                with_context(logger)[0].warning(f"year bounds unavailable from catalog ({e}); using local cache")
        if bounds is None and db:
            bounds = db.get_year_bounds()
        if not bounds:
            return jsonify({"min": None, "max": None}), 200
        return jsonify({"min": bounds.min, "max": bounds.max}), 200

    @app.get('/songs/count')
    def song_count():
        if catalog:
            try:
                return jsonify({"count": catalog.get_song_count(), "source": "catalog"}), 200
            except CatalogError as e:
                with_context(logger)[0].warning(f"song count unavailable from catalog ({e}); using local cache")
        if db:
            return jsonify({"count": db.count_songs(), "source": "cache"}), 200
        return jsonify({"count": 0, "reason": "catalog not configured"}), 200

    return app
