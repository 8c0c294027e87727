# config.py
import os
import tempfile


class Settings:
    """Daemon and client settings, read from TS_* environment variables"""

    def __init__(self):
        self.host: str = os.getenv("TS_HOST", "127.0.0.1")
        self.port: int = int(os.getenv("TS_PORT", "8765"))

        # Where job output files are created
        self.output_dir: str = os.getenv("TS_OUTPUT_DIR", tempfile.gettempdir())

        # Worker idle polling and long-poll disconnect checks (seconds)
        self.poll_interval: float = float(os.getenv("TS_POLL_INTERVAL", "0.5"))
        self.wait_poll: float = float(os.getenv("TS_WAIT_POLL", "1.0"))

        self.log_level: str = os.getenv("TS_LOG_LEVEL", "INFO")

    @property
    def base_url(self) -> str:
        return f"http://{self.host}:{self.port}"


# Global settings instance
settings = Settings()
