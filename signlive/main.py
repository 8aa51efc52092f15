import os
import logging

import uvicorn
from dotenv import load_dotenv


def main():
    load_dotenv()
    logging.basicConfig(
        level=os.getenv("SIGNLIVE_LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    uvicorn.run(
        "signlive.api.app:app",
        host=os.getenv("SIGNLIVE_HOST", "127.0.0.1"),
        port=int(os.getenv("SIGNLIVE_PORT", "8000")),
    )


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        print("Exit")
