"""
Application configuration management using Pydantic Settings
Handles all environment variables and storefront settings
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional, List, Dict
from functools import lru_cache


class Settings(BaseSettings):
    """Main storefront settings"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Application Settings
    APP_NAME: str = "Suki Storefront"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    # Document Store
    STORE_BACKEND: str = "firestore"  # firestore | memory
    STORE_TIMEOUT_SECONDS: float = 10.0

    # Firebase Configuration
    FIREBASE_CREDENTIALS_JSON: Optional[str] = None
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None
    FIREBASE_PROJECT_ID: Optional[str] = None

    # Collections
    ORDERS_COLLECTION: str = "orders"
    USERS_COLLECTION: str = "users"
    PRODUCTS_COLLECTION: str = "products"
    CARTS_COLLECTION: str = "carts"

    # Display
    WALLET_LABEL: str = "Suki Cash"
    CURRENCY_SYMBOL: str = "₱"

    # Bank and e-wallet placeholders offered at checkout
    BANK_PLACEHOLDERS: List[Dict[str, str]] = [
        {"name": "BPI", "code": "bpi", "type": "bank"},
        {"name": "BDO", "code": "bdo", "type": "bank"},
        {"name": "Metrobank", "code": "metrobank", "type": "bank"},
        {"name": "GCash", "code": "gcash", "type": "ewallet"},
        {"name": "PayMaya", "code": "paymaya", "type": "ewallet"},
    ]

    # Cart Sync
    SYNC_FAILURE_ALERT_THRESHOLD: int = 3

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: Optional[str] = "logs/storefront.log"
    LOG_MAX_SIZE_MB: int = 10
    LOG_BACKUP_COUNT: int = 5

    def user_path(self, buyer_id: str) -> str:
        return f"{self.USERS_COLLECTION}/{buyer_id}"

    def cart_path(self, buyer_id: str) -> str:
        return f"{self.CARTS_COLLECTION}/{buyer_id}"

    def order_path(self, order_id: str) -> str:
        return f"{self.ORDERS_COLLECTION}/{order_id}"

    def buyer_orders_path(self, buyer_id: str) -> str:
        return f"{self.user_path(buyer_id)}/orders"

    def buyer_order_path(self, buyer_id: str, order_id: str) -> str:
        return f"{self.buyer_orders_path(buyer_id)}/{order_id}"

    def balance_path(self, buyer_id: str) -> str:
        return f"{self.user_path(buyer_id)}/wallet/balance"

    def ledger_path(self, buyer_id: str) -> str:
        return f"{self.balance_path(buyer_id)}/transactions"

    def payment_methods_path(self, buyer_id: str) -> str:
        return f"{self.user_path(buyer_id)}/paymentMethods"

    def product_path(self, product_id: str) -> str:
        return f"{self.PRODUCTS_COLLECTION}/{product_id}"


@lru_cache()
def get_settings() -> Settings:
    """
    Create cached settings instance
    This ensures settings are loaded only once
    """
    return Settings()


# Global settings instance
settings = get_settings()
