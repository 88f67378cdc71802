from datetime import datetime

from core.config import settings


def log_event(message: str, to_file: bool = False):
    timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    full_message = f"[{timestamp}] {message}"
    print(full_message)

    if to_file:
        with open(settings.LOG_FILE, "a") as f:
            f.write(full_message + "\n")
