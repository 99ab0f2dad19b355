from typing import List, Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Configuración general
    app_name: str = "Tienda de Calzado API"
    cors_origins: str = "http://localhost:3000,http://localhost:3001"

    # Configuración de MongoDB
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db_name: str = "tienda"

    # Tokens emitidos por el proveedor de identidad
    secret_key: str = "mysecretkey"
    algorithm: str = "HS256"
    admin_emails: str = ""  # separados por coma

    # Mercado Pago (opcional: sin token las rutas de pago responden 501)
    mp_access_token: Optional[str] = None
    mp_webhook_secret: Optional[str] = None
    mp_api_base_url: str = "https://api.mercadopago.com"
    currency_id: str = "ARS"

    # URL pública del sitio, usada en back_urls y notification_url
    site_url: Optional[str] = None
    next_public_site_url: Optional[str] = None

    # WhatsApp Cloud API
    whatsapp_token: Optional[str] = None
    whatsapp_phone_id: Optional[str] = None
    whatsapp_api_base_url: str = "https://graph.facebook.com/v18.0"
    admin_whatsapp_number: Optional[str] = None

    # Llamadas salientes
    http_timeout_seconds: float = 10.0
    http_max_retries: int = 2
    http_retry_backoff_seconds: float = 0.5
    cart_max_retries: int = 5

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"  # Archivo desde donde se cargan las variables
        extra = "ignore"

    @property
    def cors_origin_list(self) -> List[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    @property
    def admin_email_list(self) -> List[str]:
        return [e.strip().lower() for e in self.admin_emails.split(",") if e.strip()]


# Instancia global para usar en toda la app
settings = Settings()


def get_settings() -> Settings:
    return settings
