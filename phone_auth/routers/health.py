from fastapi import APIRouter, Depends

from phone_auth.services.counters import CounterStore, get_counter_store

router = APIRouter(tags=["health"])


@router.get("/health")
def health(store: CounterStore = Depends(get_counter_store)) -> dict:
    store_ok = store.ping()
    return {"status": "ok" if store_ok else "degraded", "counter_store": store_ok}
