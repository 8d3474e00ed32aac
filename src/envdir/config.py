import platform
import re
from importlib.metadata import PackageNotFoundError, version

APP_NAME = "envdir"
EXIT_CODE_UNSUCCESSFUL = 111
VARIABLE_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

BUILD_DATE = "development"
BUILD_COMMIT = "development"

try:
    BUILD_VERSION = version(APP_NAME)
except PackageNotFoundError:
    BUILD_VERSION = "development"


def version_string() -> str:
    return "\n".join(
        [
            f"Version:         {BUILD_VERSION}",
            f"Python version:  {platform.python_version()}",
            f"Build date:      {BUILD_DATE}",
            f"Git commit:      {BUILD_COMMIT}",
        ]
    )
