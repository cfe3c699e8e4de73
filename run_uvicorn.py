# run_uvicorn.py
# Local launcher (no uvicorn reload subprocess).
import os

import uvicorn

# Safe defaults so local runs don't need a full .env for non-secret values.
os.environ.setdefault("DATABASE_URL", "sqlite:///./quickshow.db")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")

if __name__ == "__main__":
    uvicorn.run(
        "quickshow.main:create_app",
        factory=True,
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        reload=False,
    )
