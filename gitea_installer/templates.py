"""Fixed deployment templates and the typed context they are rendered from.

Rendering is plain ``string.Template`` substitution: the same context always
yields byte-identical text, and nothing from a previous render is merged in.
Literal ``$`` characters needed by nginx or the shell are written as ``$$``.
"""

from __future__ import annotations

import posixpath
from dataclasses import asdict, dataclass
from string import Template

from gitea_installer.config import defaults
from gitea_installer.config.env_profiles import DEFAULT_PROFILE, ImageProfile
from gitea_installer.models import InstallationRequest


@dataclass(frozen=True)
class TemplateContext:
    """Everything a template may reference."""

    domain: str
    password: str
    ssh_port: int
    install_dir: str
    gitea_image: str
    postgres_image: str
    nginx_image: str
    container_ssh_port: int = defaults.CONTAINER_SSH_PORT
    http_port: int = defaults.GITEA_HTTP_PORT
    db_name: str = defaults.DB_NAME
    db_user: str = defaults.DB_USER
    gitea_container: str = defaults.GITEA_CONTAINER
    db_container: str = defaults.DB_CONTAINER
    nginx_container: str = defaults.NGINX_CONTAINER
    temp_nginx_container: str = defaults.TEMP_NGINX_CONTAINER
    acme_webroot: str = defaults.ACME_WEBROOT
    temp_conf_subdir: str = defaults.TEMP_CONF_SUBDIR
    letsencrypt_live_dir: str = defaults.LETSENCRYPT_LIVE_DIR
    renewal_schedule: str = defaults.RENEWAL_SCHEDULE

    @classmethod
    def from_request(
        cls,
        request: InstallationRequest,
        profile: ImageProfile = DEFAULT_PROFILE,
    ) -> "TemplateContext":
        return cls(
            domain=request.domain,
            password=request.password,
            ssh_port=request.ssh_port,
            install_dir=request.install_dir,
            gitea_image=profile.gitea_image,
            postgres_image=profile.postgres_image,
            nginx_image=profile.nginx_image,
        )

    @property
    def live_dir(self) -> str:
        return posixpath.join(self.letsencrypt_live_dir, self.domain)

    @property
    def ssl_dir(self) -> str:
        return posixpath.join(self.install_dir, defaults.SSL_SUBDIR)

    @property
    def compose_password(self) -> str:
        """The password as compose must see it: ``$`` is its interpolation sigil."""

        return self.password.replace("$", "$$")

    def as_mapping(self) -> dict[str, object]:
        mapping: dict[str, object] = asdict(self)
        mapping["live_dir"] = self.live_dir
        mapping["ssl_dir"] = self.ssl_dir
        mapping["compose_password"] = self.compose_password
        return mapping


def render(template: Template, context: TemplateContext) -> str:
    """Substitute ``context`` into ``template``; unknown placeholders raise ``KeyError``."""

    return template.substitute(context.as_mapping())


COMPOSE_TEMPLATE = Template("""\
version: "3.8"

networks:
  gitea:
    external: false

volumes:
  gitea-data:
  postgres-data:

services:
  server:
    image: ${gitea_image}
    container_name: ${gitea_container}
    environment:
      - USER_UID=1000
      - USER_GID=1000
      - GITEA__database__DB_TYPE=postgres
      - GITEA__database__HOST=db:5432
      - GITEA__database__NAME=${db_name}
      - GITEA__database__USER=${db_user}
      - GITEA__database__PASSWD=${compose_password}
      - GITEA__server__DOMAIN=${domain}
      - GITEA__server__ROOT_URL=https://${domain}/
      - GITEA__server__SSH_DOMAIN=${domain}
      - GITEA__server__DISABLE_SSH=false
      - GITEA__server__SSH_PORT=${container_ssh_port}
    restart: unless-stopped
    networks:
      - gitea
    volumes:
      - gitea-data:/data
      - /etc/timezone:/etc/timezone:ro
      - /etc/localtime:/etc/localtime:ro
    expose:
      - "${http_port}"
      - "${container_ssh_port}"
    ports:
      - "${ssh_port}:${container_ssh_port}"  # For SSH access
    healthcheck:
      test: ["CMD", "wget", "-q", "--spider", "http://localhost:${http_port}/api/healthz"]
      interval: 30s
      timeout: 10s
      retries: 3
      start_period: 40s
    depends_on:
      db:
        condition: service_healthy

  db:
    image: ${postgres_image}
    container_name: ${db_container}
    restart: unless-stopped
    environment:
      - POSTGRES_USER=${db_user}
      - POSTGRES_PASSWORD=${compose_password}
      - POSTGRES_DB=${db_name}
    networks:
      - gitea
    volumes:
      - postgres-data:/var/lib/postgresql/data
    healthcheck:
      test: ["CMD", "pg_isready", "-U", "${db_user}"]
      interval: 10s
      timeout: 5s
      retries: 5

  nginx:
    image: ${nginx_image}
    container_name: ${nginx_container}
    restart: unless-stopped
    ports:
      - "80:80"
      - "443:443"
    volumes:
      - ./nginx/conf.d:/etc/nginx/conf.d
      - ./nginx/ssl:/etc/nginx/ssl
      - ${acme_webroot}:${acme_webroot}:ro
    networks:
      - gitea
    depends_on:
      - server
""")

# Brings up only the proxy, with its own ACME-only conf dir, so the HTTP
# challenge can be answered before the application exists.
TEMP_COMPOSE_TEMPLATE = Template("""\
version: "3.8"

services:
  nginx:
    image: ${nginx_image}
    container_name: ${temp_nginx_container}
    restart: "no"
    ports:
      - "80:80"
      - "443:443"
    volumes:
      - ./${temp_conf_subdir}:/etc/nginx/conf.d
      - ./nginx/ssl:/etc/nginx/ssl
      - ${acme_webroot}:${acme_webroot}:ro
""")

ACME_NGINX_TEMPLATE = Template("""\
server {
    listen 80;
    server_name ${domain};

    location /.well-known/acme-challenge/ {
        root ${acme_webroot};
    }

    location / {
        return 404;
    }
}

server {
    listen 443 ssl;
    server_name ${domain};

    ssl_certificate /etc/nginx/ssl/cert.pem;
    ssl_certificate_key /etc/nginx/ssl/key.pem;

    return 503;
}
""")

NGINX_TEMPLATE = Template("""\
server {
    listen 80;
    server_name ${domain};

    # ACME HTTP-01 challenges for certificate issuance and renewal
    location /.well-known/acme-challenge/ {
        root ${acme_webroot};
    }

    # Redirect all HTTP requests to HTTPS
    location / {
        return 301 https://$$host$$request_uri;
    }
}

server {
    listen 443 ssl;
    server_name ${domain};

    # SSL configuration
    ssl_certificate /etc/nginx/ssl/cert.pem;
    ssl_certificate_key /etc/nginx/ssl/key.pem;

    ssl_protocols TLSv1.2 TLSv1.3;
    ssl_prefer_server_ciphers on;
    ssl_ciphers ECDHE-ECDSA-AES128-GCM-SHA256:ECDHE-RSA-AES128-GCM-SHA256:ECDHE-ECDSA-AES256-GCM-SHA384:ECDHE-RSA-AES256-GCM-SHA384:ECDHE-ECDSA-CHACHA20-POLY1305:ECDHE-RSA-CHACHA20-POLY1305;

    # Security headers
    add_header X-Content-Type-Options nosniff;
    add_header X-Frame-Options DENY;
    add_header Content-Security-Policy "default-src 'self'; script-src 'self' 'unsafe-inline'; style-src 'self' 'unsafe-inline'";
    add_header Strict-Transport-Security "max-age=31536000; includeSubDomains" always;

    # Proxy configuration
    location / {
        proxy_pass http://server:${http_port};
        proxy_set_header Host $$host;
        proxy_set_header X-Real-IP $$remote_addr;
        proxy_set_header X-Forwarded-For $$proxy_add_x_forwarded_for;
        proxy_set_header X-Forwarded-Proto $$scheme;

        # WebSocket support
        proxy_set_header Upgrade $$http_upgrade;
        proxy_set_header Connection "upgrade";

        # Increase timeouts for large Git operations
        proxy_read_timeout 300;
        proxy_connect_timeout 300;
        proxy_send_timeout 300;

        client_max_body_size 100M;
    }
}
""")

RENEWAL_CRON_TEMPLATE = Template(
    "${renewal_schedule} certbot renew --quiet"
    " && cp ${live_dir}/fullchain.pem ${ssl_dir}/cert.pem"
    " && cp ${live_dir}/privkey.pem ${ssl_dir}/key.pem"
    " && docker restart ${nginx_container}"
)

HOSTS_ENTRY_TEMPLATE = Template("${loopback} ${domain}")

SUMMARY_TEMPLATE = Template("""\
# Gitea Installation

## Access Information

- Gitea Web Interface: https://${domain}
- SSH Access: ssh://git@${domain}:${ssh_port}
- Installation Directory: ${install_dir}
- Database Password: ${password}

## Management Commands

- View logs: `docker-compose logs -f`
- Restart services: `docker-compose restart`
- Stop services: `docker-compose down`
- Start services: `docker-compose up -d`

## Backup Commands

To backup your Gitea installation:

```bash
# Backup Gitea data
docker run --rm --volumes-from ${gitea_container} -v $$(pwd)/backups:/backup alpine sh -c "cd /data && tar czf /backup/gitea-data-$$(date +%Y%m%d).tar.gz ."

# Backup PostgreSQL database
docker exec -t ${db_container} pg_dumpall -c -U ${db_user} | gzip > $$(pwd)/backups/postgres-$$(date +%Y%m%d).gz
```

""")


def render_compose(context: TemplateContext) -> str:
    return render(COMPOSE_TEMPLATE, context)


def render_temp_compose(context: TemplateContext) -> str:
    return render(TEMP_COMPOSE_TEMPLATE, context)


def render_nginx_conf(context: TemplateContext) -> str:
    return render(NGINX_TEMPLATE, context)


def render_summary(context: TemplateContext) -> str:
    return render(SUMMARY_TEMPLATE, context)


def render_renewal_cron(context: TemplateContext) -> str:
    return render(RENEWAL_CRON_TEMPLATE, context)


def render_hosts_entry(context: TemplateContext) -> str:
    return HOSTS_ENTRY_TEMPLATE.substitute(loopback=defaults.LOOPBACK_ADDRESS, domain=context.domain)


def render_acme_nginx_conf(context: TemplateContext) -> str:
    return render(ACME_NGINX_TEMPLATE, context)
