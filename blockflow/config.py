"""
Configuration settings for the BlockFlow engine.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""
    
    # Application
    APP_NAME: str = "BlockFlow"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True
    
    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    
    # Execution engine
    SIMULATION_DELAY_SCALE: float = 1.0  # Multiplier for simulated block latency, 0 disables
    REJECT_CYCLES: bool = False  # Fail fast on cyclic graphs instead of best-effort ordering
    DEMO_PROJECT_ID: str = "demo-chatbot"
    
    # Logging
    LOG_LEVEL: str = "INFO"
    
    class Config:
        env_file = ".env"
        case_sensitive = True


# Global settings instance
settings = Settings()
