"""Key-value access over the ``kv_store`` table.

Values are arbitrary JSON documents. Keys are namespaced with ``:``, e.g.
``products:<merchant>:<product>``; ``get_by_prefix`` scans a namespace.
"""
from models import db, KVEntry


def get(key):
    entry = db.session.get(KVEntry, key)
    return entry.value if entry else None


def set(key, value):
    entry = db.session.get(KVEntry, key)
    if entry is None:
        db.session.add(KVEntry(key=key, value=value))
    else:
        entry.value = value
    db.session.commit()


def delete(key):
    KVEntry.query.filter(KVEntry.key == key).delete()
    db.session.commit()


def mset(keys, values):
    if len(keys) != len(values):
        raise ValueError("keys and values must have the same length")
    for key, value in zip(keys, values):
        entry = db.session.get(KVEntry, key)
        if entry is None:
            db.session.add(KVEntry(key=key, value=value))
        else:
            entry.value = value
    db.session.commit()


def mget(keys):
    if not keys:
        return []
    found = {e.key: e.value for e in KVEntry.query.filter(KVEntry.key.in_(keys)).all()}
    return [found[k] for k in keys if k in found]


def mdelete(keys):
    if not keys:
        return
    KVEntry.query.filter(KVEntry.key.in_(keys)).delete()
    db.session.commit()


def get_by_prefix(prefix):
    rows = (
        KVEntry.query
        .filter(KVEntry.key.startswith(prefix, autoescape=True))
        .order_by(KVEntry.key)
        .all()
    )
    return [row.value for row in rows]
