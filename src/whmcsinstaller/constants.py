"""Fixed values of the WHMCS provisioning recipe."""

APP_NAME = "WHMCS"
APP_TYPE = "whmcs"

VERSION_CHECK_URL = "https://api1.whmcs.com/download/latest"
RELEASE_CACHE_KEY = "whmcs.versions"

ADMIN_USERNAME = "admin"
ADMIN_PASSWORD_LENGTH = 10
ENCRYPTION_HASH_LENGTH = 64
MYSQL_CHARSET = "utf8"

MIN_CONNECTION_LIMIT = 15
DEFAULT_CONNECTION_LIMIT = 10

CRON_SCHEDULE = "*/5 * * * *"
CRON_SCRIPT = "crons/cron.php"

INSTALLER_DIR = "install"
INSTALLER_SCRIPT = "install/bin/installer.php"
INSTALLER_CONFIG_ENV = "CONF"

LICENSE_MARKER = "vendor/whmcs/whmcs-foundation/lib/License.php"
VERSION_MARKER = "version.txt"

ACL_MIN = "min"
ACL_MAX = "max"

DIR_MODE = 0o755
FILE_MODE = 0o644
WRITABLE_DIR_MODE = 0o775
WRITABLE_FILE_MODE = 0o664

DELETE_SCOPES = ("all", "files", "db", "none")
