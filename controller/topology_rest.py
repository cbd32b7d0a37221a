"""
REST client for region snapshots from the backend controller
"""
import logging
from typing import Dict, Optional

import requests

from utils.config import Config

logger = logging.getLogger(__name__)


class RegionClient:
    """Fetches the current region when the event feed needs a resync"""

    def __init__(self, base_url: str = Config.CONTROLLER_REST_URL,
                 timeout: float = Config.CONTROLLER_REST_TIMEOUT):
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout

    def fetch_region(self, force: bool = True) -> Optional[Dict]:
        """
        Get the current region snapshot

        Args:
            force: Ask the controller for a snapshot even if nothing changed

        Returns:
            Optional[Dict]: Region data, None when the controller could not
            provide one
        """
        url = f"{self.base_url}/region"
        try:
            response = requests.get(url, params={'force': str(force).lower()}, timeout=self.timeout)
            if response.status_code == 200:
                return response.json()
            if response.status_code == 204:
                logger.warning("Controller has no region to report")
                return None
            logger.error(f"Controller region API returned status {response.status_code}")
            return None
        except requests.exceptions.RequestException as e:
            logger.error(f"Error connecting to controller region API: {str(e)}")
            return None
        except ValueError as e:
            logger.error(f"Invalid region data from controller: {str(e)}")
            return None
