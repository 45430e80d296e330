import uvicorn

from gymsched.core.config import get_settings
from gymsched.main import app  # noqa: F401

if __name__ == "__main__":
    uvicorn.run("gymsched.main:app", host="0.0.0.0", port=8000, reload=get_settings().DEBUG_MODE)
