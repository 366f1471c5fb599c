from functools import lru_cache
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Environment-driven configuration for the MCP server."""

    # Upstream site
    AIRBNB_BASE_URL: str = "https://www.airbnb.com"
    AIRBNB_USER_AGENT: str = (
        "ModelContextProtocol/1.0 (Autonomous; +https://github.com/modelcontextprotocol/servers)"
    )
    # Wall-clock limit for a single page fetch, in seconds
    AIRBNB_FETCH_TIMEOUT: float = 6.0

    # Skip robots.txt entirely (same as --ignore-robots-txt)
    AIRBNB_IGNORE_ROBOTS_TXT: bool = False

    # HTTP transport (only used with --http)
    MCP_HTTP_HOST: str = "0.0.0.0"
    MCP_HTTP_PORT: int = 3000

    # Logging
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
