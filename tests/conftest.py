import os
import sys
import warnings
from pathlib import Path

# Ignore warnings from app.shared
warnings.filterwarnings("ignore", category=DeprecationWarning, module="app.shared.*")

# Set test environment variables
os.environ.update(
    {
        "AUTO_TRANSCODE_ON_LIVE": "false",
        "SEED_DEFAULT_PROFILES": "false",
    }
)
os.environ.pop("REDIS_URL_DEFAULT", None)
os.environ.pop("REDIS_URL", None)

# Ensure the project root is on sys.path so `app` packages resolve
PROJECT_ROOT = Path(__file__).resolve().parents[1]
project_root_str = str(PROJECT_ROOT)
if project_root_str not in sys.path:
    sys.path.insert(0, project_root_str)

# Import database fixtures so they are available to all tests
from tests.fixtures.mongo_fixtures import *  # noqa: E402, F403
from tests.fixtures.live_fixtures import *  # noqa: E402, F403
