"""Application configuration.

Loads settings from environment variables with sensible defaults.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API
    api_version: str = "0.1.0"
    debug: bool = False

    # Backend
    backend_url: str = "http://localhost:8123"
    backend_timeout: float = 10.0
    categories_path: str = "/categories"
    subcategories_path: str = "/subcategories"
    product_types_path: str = "/productTypes"
    products_path: str = "/products"
    auth_path: str = "/user/auth"
    logout_path: str = "/user/logout"

    # Navigable categories (landing pages)
    men_category_id: str = "6405fa546fb18bc74bd3d9cb"
    men_path: str = "/barbati"
    men_featured_product_types: list[str] = ["Blugi", "Hanorace"]

    women_category_id: str = "640601ffbab3fa741b0ade07"
    women_path: str = "/femei"
    women_featured_product_types: list[str] = ["Fuste", "Genti"]

    # Cart storage
    cart_storage_key: str = "cartItems"
    cart_storage_file: str | None = None
    cart_persist_empty: bool = False

    # Tabs
    tab_idle_timeout: float | None = 1800.0
    tab_sweep_interval: float = 60.0

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


settings = Settings()
