import os
from pathlib import Path

from ponchister import create_app
from ponchister.catalog_client import CachedCatalog, CatalogClient
from ponchister.config import catalog_filters, load_config
from ponchister.history import RecentSongHistory
from ponchister.session import AutoGameQueue
from ponchister.storage import DB


def build_app():
    db_path = os.environ.get('PONCHISTER_DB', str(Path.cwd() / 'ponchister.db'))
    db = DB(Path(db_path))
    cfg = load_config(db)

    catalog_url = cfg['catalog_url'] or os.environ.get('PONCHISTER_CATALOG_URL', '')
    client = CatalogClient(catalog_url, max_attempts=cfg['fetch_attempts'])
    cached = CachedCatalog(client, db)

    def fetch_songs():
        # Filters are re-read on every start so /config changes apply to the next game
        return cached.fetch_songs(**catalog_filters(load_config(db)))

    history = RecentSongHistory(db, limit=cfg['history_limit'])
    queue = AutoGameQueue(fetch_songs, history, soft_usage_limit=cfg['soft_usage_limit'])
    return create_app(queue=queue, db_path=db_path, catalog=client)


if __name__ == '__main__':
    app = build_app()
    app.run(host='0.0.0.0', port=int(os.environ.get('PORT', 9292)))
