# services/__init__.py
from __future__ import annotations

from typing import List

from ordin_platform.config_base import Config

from ._types import RegistrationService, Target
from .dispatcher import Dispatcher
from .dns import DnsRegistrationService
from .inventory import InventoryStore
from .provisioning import ProvisioningService

__all__ = [
    "Target",
    "RegistrationService",
    "DnsRegistrationService",
    "InventoryStore",
    "ProvisioningService",
    "Dispatcher",
    "build_services",
    "build_dispatcher",
]


def build_services(config: Config) -> List[RegistrationService]:
    # order matters: no playbooks for a host whose DNS record was not accepted
    return [DnsRegistrationService.from_config(config), ProvisioningService.from_config(config)]


def build_dispatcher(config: Config) -> Dispatcher:
    return Dispatcher(build_services(config))
