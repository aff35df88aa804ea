"""
Exclusion mutuelle par réservation (process local).

Les vues synchrones tournent dans le threadpool de FastAPI: deux checkouts
ou un confirm concurrent sur la même réservation sont sérialisés ici.
Entre process, l'index unique partiel et les RPC gardées prennent le relais.
"""
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List

_registry_lock = threading.Lock()
_locks: Dict[str, List] = {}  # booking_id -> [lock, holders]

@contextmanager
def booking_lock(booking_id: str) -> Iterator[None]:
    key = str(booking_id)
    with _registry_lock:
        entry = _locks.setdefault(key, [threading.Lock(), 0])
        entry[1] += 1
    entry[0].acquire()
    try:
        yield
    finally:
        entry[0].release()
        with _registry_lock:
            entry[1] -= 1
            if entry[1] == 0:
                _locks.pop(key, None)

def active_keys() -> List[str]:
    with _registry_lock:
        return list(_locks.keys())
