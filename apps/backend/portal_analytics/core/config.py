from typing import List

from pydantic_settings import BaseSettings


def _split_csv(raw: str) -> List[str]:
    return [p.strip() for p in (raw or "").split(",") if p.strip()]


class Settings(BaseSettings):
    app_name: str = "Portal Analytics"
    log_level: str = "INFO"

    database_url: str = ""
    db_pool_size: int = 5
    db_max_overflow: int = 10
    sql_echo: bool = False

    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"

    # empty token = dashboard reports are open (local dev)
    dashboard_api_token: str = ""
    cors_origins: str = "*"

    # operator's own marketing site, tracked like any other tenant
    operator_aliases: str = "uptrade,uptrade-media,uptrademedia,uptrademedia.com,um-main0001,um-uptrade01"
    operator_domain: str = "uptrademedia.com"
    operator_slug_fragment: str = "uptrade"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def operator_alias_set(self) -> set[str]:
        return {a.lower() for a in _split_csv(self.operator_aliases)}

    @property
    def cors_origin_list(self) -> List[str]:
        return _split_csv(self.cors_origins) or ["*"]


settings = Settings()
