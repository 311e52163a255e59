from __future__ import annotations

import logging

from ..executor import Executor

logger = logging.getLogger(__name__)


def enable_service(executor: Executor, name: str, *, user: bool = False, now: bool = True) -> None:
    argv = ["systemctl"] if user else ["sudo", "systemctl"]
    if user:
        argv.append("--user")
    argv.append("enable")
    if now:
        argv.append("--now")
    argv.append(name)
    executor.run(argv)
    logger.info("Enabled service %s", name)


def disable_service(executor: Executor, name: str, *, user: bool = False) -> None:
    argv = ["systemctl", "--user"] if user else ["sudo", "systemctl"]
    executor.run([*argv, "disable", "--now", name])
    logger.info("Disabled service %s", name)
