"""Turn a spec document into the immutable tuple the proxy routes against."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .errors import BindError
from .ledger import PendingLedger
from .router import OperationIndex, Route
from .spec import Operation, SpecDocument, walk_operations
from .validation import ResponseValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SpecBinding:
    """Everything derived from one spec document.

    Operation handles are indexes into :attr:`operations` and are only
    meaningful for this binding.
    """

    spec: SpecDocument
    document: Mapping[str, Any]
    operations: tuple[Operation, ...]
    index: OperationIndex
    ledger: PendingLedger
    validator: ResponseValidator

    def operation(self, handle: int) -> Operation:
        return self.operations[handle]

    def pending_operations(self) -> list[Operation]:
        return [self.operations[handle] for handle in self.ledger.pending()]


def snapshot(spec: SpecDocument) -> Mapping[str, Any]:
    """Return a plain JSON copy of the document for ``$ref`` resolution."""

    try:
        data = json.dumps(dict(spec.raw), default=str)
        return json.loads(data)
    except (TypeError, ValueError) as exc:
        msg = f'Unable to serialise spec document: {exc}'
        raise BindError(msg) from exc


def bind(spec: SpecDocument, *, verbose: bool = False) -> SpecBinding:
    """Build a fresh index, ledger and validator for ``spec``."""

    document = snapshot(spec)
    operations: list[Operation] = []
    index = OperationIndex()
    for path, method, operation in walk_operations(spec):
        handle = len(operations)
        pattern = spec.base_path.rstrip('/') + path
        index.add(Route(method=method, pattern=pattern, handle=handle))
        operations.append(operation)
        if verbose:
            logger.info('Register %s %s', method, pattern)

    return SpecBinding(
        spec=spec,
        document=document,
        operations=tuple(operations),
        index=index,
        ledger=PendingLedger(range(len(operations))),
        validator=ResponseValidator(spec, document),
    )
