# =============================================================================
# ZAPP COMMESSE v1.0 - DATABASE MANAGER (PostgreSQL)
# =============================================================================
# Connection pool condiviso tra richieste HTTP e worker di scrittura.
# Ogni operazione prende una connessione dal pool e la restituisce.
# =============================================================================

import logging
import pathlib
from contextlib import contextmanager
from typing import Optional

import psycopg2
from psycopg2 import pool
from psycopg2.extras import RealDictCursor

from .config import config


logger = logging.getLogger('commesse.database')


# =============================================================================
# CONNECTION POOL
# =============================================================================

_pool: Optional[pool.ThreadedConnectionPool] = None


def init_pool():
    """Inizializza il connection pool PostgreSQL."""
    global _pool
    if _pool is not None:
        return

    _pool = pool.ThreadedConnectionPool(
        minconn=config.PG_POOL_MIN,
        maxconn=config.PG_POOL_MAX,
        host=config.PG_HOST,
        port=config.PG_PORT,
        database=config.PG_DATABASE,
        user=config.PG_USER,
        password=config.PG_PASSWORD
    )
    logger.info("PostgreSQL pool: %s:%s/%s", config.PG_HOST, config.PG_PORT, config.PG_DATABASE)


def close_pool():
    """Chiude il connection pool."""
    global _pool
    if _pool is not None:
        _pool.closeall()
        _pool = None


@contextmanager
def get_db_cursor():
    """
    Context manager per cursor con commit/rollback automatico.

    La connessione è presa dal pool per la sola durata del blocco,
    quindi è sicuro usarlo da più thread.
    """
    if _pool is None:
        init_pool()

    conn = _pool.getconn()
    cursor = conn.cursor(cursor_factory=RealDictCursor)
    try:
        yield cursor
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        cursor.close()
        _pool.putconn(conn)


# =============================================================================
# INIZIALIZZAZIONE DATABASE
# =============================================================================

def _run_init_schema(conn) -> None:
    """Esegue lo script di inizializzazione schema."""
    script_path = pathlib.Path(__file__).parent.parent / 'migrations' / 'init_schema.sql'

    logger.info("Creazione schema database da %s", script_path.name)
    schema_sql = script_path.read_text(encoding='utf-8')

    cur = conn.cursor()
    try:
        cur.execute(schema_sql)
        conn.commit()
    except psycopg2.Error:
        conn.rollback()
        raise
    finally:
        cur.close()


def init_database() -> None:
    """Inizializza pool e schema (se le tabelle commesse non esistono)."""
    init_pool()

    raw_conn = _pool.getconn()
    try:
        cur = raw_conn.cursor(cursor_factory=RealDictCursor)
        cur.execute("""
            SELECT EXISTS (
                SELECT FROM information_schema.tables
                WHERE table_schema = 'public' AND table_name = 'commesse'
            ) AS has_commesse
        """)
        check = cur.fetchone()
        cur.close()
        raw_conn.commit()

        if not check['has_commesse']:
            _run_init_schema(raw_conn)
    finally:
        _pool.putconn(raw_conn)
