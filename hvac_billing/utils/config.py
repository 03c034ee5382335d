"""
Configuration management using pydantic-settings

Loads configuration from environment variables and .env file
"""

import logging
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    
    # Storage Configuration
    STORAGE_BACKEND: str = Field(
        default="file",
        description="Record storage backend: 'memory', 'file' or 'postgres'"
    )
    STORAGE_FILE: str = Field(
        default="hvac_billing.json",
        description="JSON document used by the file backend"
    )
    DB_HOST: str = Field(default="localhost", description="Database host")
    DB_PORT: int = Field(default=5432, description="Database port")
    DB_NAME: str = Field(default="hvac_billing", description="Database name")
    DB_USER: str = Field(default="billing_user", description="Database user")
    DB_PASSWORD: str = Field(default="billing_password", description="Database password")
    DB_TABLE: str = Field(default="kv_store", description="Key-value table name")
    
    # Application Settings
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    
    # Invoice Numbering
    INVOICE_PREFIX: str = Field(default="INV", description="Generated invoice number prefix")
    INVOICE_PADDING: int = Field(default=3, ge=1, description="Zero padding of the sequence part")
    DEFAULT_HSN: str = Field(default="995463", description="HSN code used when a line omits one")
    
    # Invoice Template
    COMPANY_NAME: str = Field(default="VR TECH HVAC Solutions", description="Name in the signature caption")
    BANK_NAME: str = Field(default="HDFC bank", description="Bank name printed on invoices")
    BANK_ACCOUNT: str = Field(default="5010 0562 3633 08", description="Bank account number")
    BANK_IFSC: str = Field(default="HDFC0003760", description="Bank IFSC code")
    GPAY_NUMBER: str = Field(default="9790811296", description="G PAY number")
    DECLARATION: str = Field(
        default=(
            "We declare that this invoice shows the actual price of the Goods "
            "described and that all particulars are true and correct."
        ),
        description="Declaration paragraph"
    )
    WORDS_SUFFIX: str = Field(default="RUPEES ONLY", description="Suffix after the amount in words")
    LOGO_PATH: Optional[str] = Field(default=None, description="Header logo image (PNG)")
    FOOTER_PATH: Optional[str] = Field(default=None, description="Footer image (PNG)")
    
    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get the global settings instance"""
    return settings


def configure_logging(level: Optional[str] = None):
    """Apply LOG_LEVEL to the root logger"""
    logging.basicConfig(
        level=(level or settings.LOG_LEVEL).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
