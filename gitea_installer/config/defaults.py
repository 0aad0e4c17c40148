"""Project-wide default values for the Gitea installer.

Paths, ports, names and versions used by the templates and tool wrappers are
kept here so the rendered deployment can be audited in one place.
"""

DEFAULT_INSTALL_DIR = "/opt/gitea"
DEFAULT_SSH_PORT = 222
CONTAINER_SSH_PORT = 22
GITEA_HTTP_PORT = 3000

PASSWORD_LENGTH = 16

COMPOSE_FILENAME = "docker-compose.yml"
TEMP_COMPOSE_FILENAME = "temp-docker-compose.yml"
NGINX_CONF_NAME = "gitea.conf"
SUMMARY_FILENAME = "README.md"
SSL_SUBDIR = "nginx/ssl"
CONF_SUBDIR = "nginx/conf.d"
TEMP_CONF_SUBDIR = "nginx/temp-conf.d"
CERT_FILENAME = "cert.pem"
KEY_FILENAME = "key.pem"

# 容器与卷名称
GITEA_CONTAINER = "gitea"
DB_CONTAINER = "gitea-db"
NGINX_CONTAINER = "gitea-nginx"
TEMP_NGINX_CONTAINER = "temp-nginx"
NAMED_VOLUMES = ("gitea-data", "postgres-data")

DB_NAME = "gitea"
DB_USER = "gitea"

# TLS 相关默认配置
CERT_VALIDITY_DAYS = 365
RSA_KEY_BITS = 2048
LETSENCRYPT_LIVE_DIR = "/etc/letsencrypt/live"
ACME_WEBROOT = "/var/www/certbot"
RENEWAL_SCHEDULE = "0 3 * * *"

HOSTS_FILE = "/etc/hosts"
LOOPBACK_ADDRESS = "127.0.0.1"

COMPOSE_VERSION = "v2.24.6"
COMPOSE_DOWNLOAD_URL = (
    "https://github.com/docker/compose/releases/download/{version}/docker-compose-{system}-{machine}"
)
COMPOSE_INSTALL_PATH = "/usr/local/bin/docker-compose"
COMPOSE_SYMLINK_PATH = "/usr/bin/docker-compose"
DOWNLOAD_TIMEOUT = 120

START_DELAY_SECONDS = 5
