"""
FastAPI Application - CityFix
SERVICE_ROLE selects report-service, user-service or log-service
"""

# Load environment variables from .env file FIRST before any other imports
from dotenv import load_dotenv
load_dotenv()

from cityfix.core.config import config
from cityfix.core.logger import logger
from cityfix.main import create_app

app = create_app()


if __name__ == "__main__":
    import uvicorn

    logger.info(
        f"Starting {config.service_role} on port {config.port}",
        metadata={
            "service_role": config.service_role,
            "version": config.service_version,
            "environment": config.environment,
            "port": config.port
        }
    )

    uvicorn.run(
        "main:app",
        host=config.host,
        port=config.port,
        reload=config.environment == "development"
    )
