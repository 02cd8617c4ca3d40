#!/usr/bin/env python3
"""
Order Desk - Main Launcher
Starts the FastAPI app with uvicorn, with src/ on the import path
"""
import sys
from pathlib import Path

# Get project root directory
PROJECT_ROOT = Path(__file__).parent
sys.path.insert(0, str(PROJECT_ROOT / 'src'))


def main():
    """Main entry point"""
    import uvicorn

    import config
    from api.main import create_app
    from utils.logger import get_logger

    config.print_config_status()

    logger = get_logger(log_level=config.LOG_LEVEL)
    try:
        config.validate_config()
    except ValueError as e:
        # Mail settings are only needed for sending; the rest of the app still works
        logger.warning(str(e), component="Main")

    logger.info(f"Starting {config.APP_NAME} on http://{config.API_HOST}:{config.API_PORT}", component="Main")
    uvicorn.run(create_app(), host=config.API_HOST, port=config.API_PORT, log_level=config.LOG_LEVEL.lower())


if __name__ == "__main__":
    main()
