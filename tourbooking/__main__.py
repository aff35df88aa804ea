"""
Lance le service de paiement: `python -m tourbooking`.

Variables lues: PORT (4000), UVICORN_RELOAD ("1"/"true"/"yes"), LOG_LEVEL ("info").
"""
import os
import uvicorn

def main() -> None:
    uvicorn.run(
        "tourbooking.asgi:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", 4000)),
        reload=os.environ.get("UVICORN_RELOAD", "").lower() in ("1", "true", "yes"),
        log_level=os.environ.get("LOG_LEVEL", "info"),
    )

if __name__ == "__main__":
    main()
