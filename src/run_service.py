import os
import logging

import uvicorn
from dotenv import load_dotenv

from httpguard.request_logging import configure_logging

load_dotenv()

# Configure logging with environment variable control and validation
log_level = configure_logging()

logging.info("httpguard demo service starting")
logging.info(f"Log level: {log_level}")

if __name__ == "__main__":
    port = int(os.getenv("PORT", 5000))
    if os.getenv("MODE") == "dev":
        logging.info("Running in development mode with auto-reload")
        logging.info(f"Tip: check service health via `curl http://127.0.0.1:{port}/status`")
        logging.info(f"Tip: view OpenAPI docs at http://127.0.0.1:{port}/docs")
        uvicorn.run("httpguard.service:create_app", factory=True, reload=True, log_level="info", port=port)
    else:
        logging.info("Running in production mode")
        from httpguard.service import create_app
        uvicorn.run(create_app(), host="0.0.0.0", port=port)
