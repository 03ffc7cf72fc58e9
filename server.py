import os

import uvicorn

from gymtrack import settings
from gymtrack.logging import setup_logging


def main():
    setup_logging(debug=settings.LOG_DEBUG)
    # Cloud Run injects PORT.
    uvicorn.run(
        "gymtrack.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8080")),
        log_config=None,
        log_level="debug" if settings.LOG_DEBUG else "info",
    )


if __name__ == "__main__":
    main()
