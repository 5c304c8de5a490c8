from __future__ import annotations

from contextlib import contextmanager

from sqlalchemy.engine import Engine

from app.bestar.db import make_engine, make_sessionmaker


def create_script_engine(db_url: str) -> Engine:
    """Scripts run without a Flask app, so they build the engine directly."""
    return make_engine(db_url)


@contextmanager
def script_session(db_url: str):
    engine = create_script_engine(db_url)
    s = make_sessionmaker(engine)()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()
        engine.dispose()
