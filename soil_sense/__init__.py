"""
SoilSense - Simulated Soil Monitoring & Crop Advisory Engine
Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "SoilSense Team"

# Core modules
from . import config
from . import profiles
from . import simulator
from . import irrigation
from . import storage
from . import history
from . import recommendations
from . import live_feed
from . import service

# Collaborators
from . import chat

from .service import SoilDataService

__all__ = [
    # Core
    'config', 'profiles', 'simulator', 'irrigation', 'storage', 'history',
    'recommendations', 'live_feed', 'service',
    # Collaborators
    'chat',
    'SoilDataService',
]
