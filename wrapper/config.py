# wrapper/config.py
from pydantic import PrivateAttr
from pydantic_settings import BaseSettings

DEVELOPMENT = "development"
PRODUCTION = "production"

# Always refused, whatever the deployment mode.
ALWAYS_BLOCKED_HOSTS = frozenset({"127.0.0.1"})


def _csv_list(value: str) -> list[str]:
    return [x.strip() for x in value.split(",") if x.strip()]


class Settings(BaseSettings):
    # Deployment mode: "development" or "production"
    app_environment: str = PRODUCTION   # APP_ENVIRONMENT

    # Listener
    host: str = "0.0.0.0"                # HOST
    port: int = 3001                     # PORT

    # Advertised server address per mode (reported by /api/health)
    server_ip_development: str = "localhost"       # SERVER_IP_DEVELOPMENT
    server_ip_production: str = "192.168.120.4"    # SERVER_IP_PRODUCTION

    # Host guard. 127.0.0.1 is always blocked; each mode adds one more host.
    # EXTRA_BLOCKED_HOSTS=10.0.0.5,internal.example
    production_blocked_host: str = "10.106.246.81"   # PRODUCTION_BLOCKED_HOST
    development_blocked_host: str = "localhost"      # DEVELOPMENT_BLOCKED_HOST
    extra_blocked_hosts: str = ""                    # EXTRA_BLOCKED_HOSTS

    # Outbound requests
    forward_timeout: float = 60.0                        # FORWARD_TIMEOUT (seconds)
    verify_tls: bool = False                             # VERIFY_TLS (False accepts self-signed certs)
    user_agent: str = "API-Tester-Pro-Wrapper/1.0.0"     # USER_AGENT

    # CORS. Production allows any origin.
    dev_allowed_origins: str = (
        "http://localhost:8080,http://localhost:8081,"
        "http://localhost:8082,http://localhost:3000"
    )                                                    # DEV_ALLOWED_ORIGINS

    log_level: str = "INFO"                              # LOG_LEVEL

    # Pre-computed values, derived once at startup.
    _blocked_hosts: frozenset[str] = PrivateAttr(default_factory=frozenset)
    _allowed_origins: list[str] = PrivateAttr(default_factory=list)

    def model_post_init(self, __context) -> None:
        mode_host = (
            self.development_blocked_host if self.is_development
            else self.production_blocked_host
        )
        hosts = set(ALWAYS_BLOCKED_HOSTS)
        hosts.add(mode_host)
        hosts.update(_csv_list(self.extra_blocked_hosts))
        self._blocked_hosts = frozenset(h.lower() for h in hosts if h)
        self._allowed_origins = (
            _csv_list(self.dev_allowed_origins) if self.is_development else ["*"]
        )

    @property
    def environment(self) -> str:
        return self.app_environment.strip().lower()

    @property
    def is_development(self) -> bool:
        return self.environment == DEVELOPMENT

    @property
    def server_ip(self) -> str:
        return self.server_ip_development if self.is_development else self.server_ip_production

    @property
    def blocked_hosts(self) -> frozenset[str]:
        return self._blocked_hosts

    @property
    def allowed_origins(self) -> list[str]:
        return self._allowed_origins

    model_config = {"env_file": ".env", "case_sensitive": False}


settings = Settings()
