#!/usr/bin/env python3
import os

import uvicorn
from app.app import create_app

# Check if running in development mode
is_dev_mode = os.getenv("EXPLORER_DEV_MODE", "false").lower() == "true"

# Create the FastAPI app
app = create_app()


if __name__ == "__main__":
    host = os.getenv("EXPLORER_HOST", "0.0.0.0" if is_dev_mode else "127.0.0.1")
    port = int(os.getenv("EXPLORER_PORT", "8000"))

    print(f"Starting table explorer on {host}:{port}")
    print(f"Development mode: {is_dev_mode}")

    uvicorn.run("main:app", host=host, port=port, reload=is_dev_mode)
