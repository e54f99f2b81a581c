"""Settings for production deployments."""

from filevault.settings.components import config

DEBUG = False

ALLOWED_HOSTS = config(
    'DOMAIN_NAME',
    cast=lambda hosts: [host.strip() for host in hosts.split(',')],
)
