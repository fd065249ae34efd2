from os import getenv


def _flag(name: str, default: str) -> bool:
    return getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    # Fichier journal de la dernière exécution réussie (une date ISO)
    LAST_EXECUTION_FILE = getenv("LAST_EXECUTION_FILE", "last_execution.log")

    SCHEDULER_ENABLED = _flag("SCHEDULER_ENABLED", "true")
    SCHEDULER_MODE = getenv("SCHEDULER_MODE", "daily").strip().lower()  # daily | hourly
    SCHEDULER_STOP_GRACE_SECONDS = int(getenv("SCHEDULER_STOP_GRACE_SECONDS", "60"))  # attente max à l'arrêt
    CATCH_UP_ON_STARTUP = _flag("CATCH_UP_ON_STARTUP", "true")

    LOG_LEVEL = getenv("LOG_LEVEL", "INFO")

settings = Settings()
