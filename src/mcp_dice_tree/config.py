from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="DICE_TREE_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    server_name: str = "mcp-dice-tree"
    log_level: str = "WARNING"

    # Style given to dice built from notation when the caller names none.
    default_die_style: str = "GALAXY"


settings = Settings()
