# src/locobuild/core/handlers/core/rem_handler.py
import logging
from typing import List

from locobuild.core.context.scope import Scope

logger = logging.getLogger(__name__)


def handle_rem(args: List[str], _scope: Scope) -> None:
    """A remark; logs its arguments and does nothing else."""
    logger.debug("rem %s", " ".join(args))
