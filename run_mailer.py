import os
import sys

from utils.logging_utils import setup_logging
from weather_mailer.main import main


if __name__ == "__main__":
    setup_logging(level=os.getenv("LOG_LEVEL", "INFO"), job_name="weather_mailer")
    sys.exit(main(sys.argv[1] if len(sys.argv) > 1 else None))
