"""Build one request handler per catalog operation.

A handler takes the request envelope ``{"params": {...}}``, resolves every
declared input, calls the underlying function and turns the outcome into a
:class:`DispatchResponse`::

    Decoded -> Resolving(0..n-1) -> Invoking -> Responding -> Success | Failed
"""

from __future__ import annotations

import asyncio
import enum
import importlib
import importlib.util
import json
import re
import sys
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from pathlib import Path
from types import ModuleType
from typing import Any

import structlog
from pydantic import ValidationError

from ..errors import InvocationFailed, ParameterNotFound
from ..models.catalog import Catalog, OperationEntry, OperationKey
from ..models.schemas import (
    DispatchResponse,
    ErrorResponse,
    GenericRequest,
    ResultResponse,
)
from .extractor import OperationSignature
from .resolver import coerce, resolve

logger = structlog.get_logger(__name__)

_MODULE_PREFIX = "nexus_domains"


class RequestState(str, enum.Enum):
    """Phase a request was in; failures report the phase they stopped in."""

    DECODED = "decoded"
    RESOLVING = "resolving"
    INVOKING = "invoking"
    RESPONDING = "responding"


class OperationHandler:
    """Dispatch unit for a single operation. Immutable once built."""

    def __init__(
        self,
        entry: OperationEntry,
        signature: OperationSignature,
        func: Callable[..., Any],
        *,
        wrap_result: bool = True,
    ):
        self.entry = entry
        self.signature = signature
        self.func = func
        self.wrap_result = wrap_result

    @property
    def operation_id(self) -> str:
        return self.entry.operation_id

    # ------------------------------------------------------------------
    # Request lifecycle
    # ------------------------------------------------------------------

    async def handle(self, envelope: Any) -> DispatchResponse:
        """Run one request. Never raises for request-level failures."""
        state = RequestState.DECODED
        try:
            request = GenericRequest.model_validate(envelope)
        except ValidationError as e:
            return self._failed(state, 400, f"Invalid request body: {e}")

        state = RequestState.RESOLVING
        try:
            args, kwargs = self.bind(request.params)
        except ParameterNotFound as e:
            return self._failed(state, 400, str(e))
        except (TypeError, ValueError, OverflowError) as e:
            return self._failed(state, 400, f"Invalid parameter value: {e}")

        state = RequestState.INVOKING
        try:
            returned = await self._invoke(args, kwargs)
            value = self._unpack(returned)
        except InvocationFailed as e:
            return self._failed(state, 500, str(e))
        except Exception as e:
            logger.error(
                "Operation raised",
                operation=self.operation_id,
                error=str(e),
                exc_info=True,
            )
            return self._failed(state, 500, str(e))

        state = RequestState.RESPONDING
        body = ResultResponse(result=value).model_dump() if self.wrap_result else value
        try:
            body = _encodable(body)
        except ValueError as e:
            return self._failed(state, 500, f"Result is not JSON encodable: {e}")
        logger.info("Dispatched", operation=self.operation_id, state=state.value)
        return DispatchResponse(status_code=200, body=body)

    def bind(self, params: Mapping[str, Any]) -> tuple[list[Any], dict[str, Any]]:
        """Resolve and coerce every declared input, in declaration order."""
        args: list[Any] = []
        kwargs: dict[str, Any] = {}
        for param in self.signature.params:
            value = coerce(resolve(params, param.wire_name), param.type)
            if param.keyword_only:
                kwargs[param.identifier] = value
            else:
                args.append(value)
        return args, kwargs

    async def _invoke(self, args: list[Any], kwargs: dict[str, Any]) -> Any:
        if self.signature.is_async:
            return await self.func(*args, **kwargs)
        return await asyncio.to_thread(self.func, *args, **kwargs)

    def _unpack(self, returned: Any) -> Any:
        """Apply the trailing-error convention and shape the data value."""
        slots = len(self.signature.output_types)
        if slots <= 1:
            values = [returned] if slots == 1 else []
        elif isinstance(returned, (tuple, list)) and len(returned) == slots:
            values = list(returned)
        else:
            raise InvocationFailed(
                f"{self.operation_id} returned {type(returned).__name__}, "
                f"expected {slots} values"
            )

        if self.signature.reports_failure:
            err = values.pop()
            if err is not None:
                raise InvocationFailed(str(err))

        if not values:
            return None
        if len(values) == 1:
            return values[0]
        return values

    def _failed(
        self, state: RequestState, status_code: int, message: str
    ) -> DispatchResponse:
        logger.warning(
            "Dispatch failed",
            operation=self.operation_id,
            state=state.value,
            status_code=status_code,
            error=message,
        )
        return DispatchResponse(
            status_code=status_code,
            body=ErrorResponse(error=message).model_dump(),
            error=message,
        )


class DispatchGenerator:
    """Turns a catalog plus its signature table into handlers."""

    def __init__(self, wrap_result: bool = True):
        self.wrap_result = wrap_result
        self._modules: dict[Path, ModuleType] = {}
        # Sibling modules imported by domain files, per domain directory
        self._siblings: dict[Path, dict[str, ModuleType]] = {}

    def generate(
        self,
        catalog: Catalog,
        signatures: Mapping[OperationKey, OperationSignature],
    ) -> dict[str, OperationHandler]:
        """Return ``{operation_id: handler}`` for every bindable operation."""
        handlers: dict[str, OperationHandler] = {}
        for entry in catalog.services:
            signature = signatures.get(entry.key)
            if signature is None:
                logger.warning("No signature for operation", operation=entry.operation_id)
                continue
            try:
                func = self._bind(signature)
            except Exception as e:
                logger.warning(
                    "Could not bind operation",
                    operation=entry.operation_id,
                    source=str(signature.source),
                    error=str(e),
                )
                continue
            handlers[entry.operation_id] = OperationHandler(
                entry, signature, func, wrap_result=self.wrap_result
            )

        logger.info("Dispatch handlers generated", handler_count=len(handlers))
        return handlers

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _bind(self, signature: OperationSignature) -> Callable[..., Any]:
        module = self._load_module(signature.source, signature.namespace)
        func = getattr(module, signature.function, None)
        if not callable(func):
            raise AttributeError(f"{signature.function} is not callable")
        return func

    def _load_module(self, source: Path, namespace: str) -> ModuleType:
        """Import *source* once under a private, namespace-derived module name."""
        source = source.resolve()
        if source in self._modules:
            return self._modules[source]

        name = _module_name(namespace, source)
        spec = importlib.util.spec_from_file_location(name, source)
        if spec is None or spec.loader is None:
            raise ImportError(f"cannot load {source}")
        module = importlib.util.module_from_spec(spec)
        sys.modules[name] = module
        try:
            with self._sibling_imports(source.parent):
                spec.loader.exec_module(module)
        except BaseException:
            sys.modules.pop(name, None)
            raise
        self._modules[source] = module
        return module

    @contextmanager
    def _sibling_imports(self, directory: Path) -> Iterator[None]:
        """Let a domain file import the modules beside it by plain name.

        Sibling modules are kept per directory so two domains may each ship
        their own ``helpers.py``; whatever those names meant globally before
        is restored afterwards.
        """
        local = _local_module_names(directory)
        cached = self._siblings.setdefault(directory, {})
        shadowed = {
            n: m for n, m in list(sys.modules.items()) if _top_level(n) in local
        }
        for name in shadowed:
            del sys.modules[name]
        sys.modules.update(cached)
        sys.path.insert(0, str(directory))
        importlib.invalidate_caches()
        try:
            yield
        finally:
            sys.path.remove(str(directory))
            for name in [n for n in sys.modules if _top_level(n) in local]:
                cached[name] = sys.modules.pop(name)
            sys.modules.update(shadowed)


def _encodable(body: Any) -> Any:
    # Strict JSON: NaN and Infinity are rejected, unknown objects become str.
    return json.loads(json.dumps(body, default=str, allow_nan=False))


def _local_module_names(directory: Path) -> set[str]:
    names = {p.stem for p in directory.glob("*.py")}
    names.update(p.name for p in directory.iterdir() if (p / "__init__.py").is_file())
    return names


def _top_level(module_name: str) -> str:
    return module_name.split(".", 1)[0]


def _module_name(namespace: str, source: Path) -> str:
    parts = [*namespace.split("."), source.stem]
    slugs = [re.sub(r"\W", "_", p) or "_" for p in parts]
    return ".".join([_MODULE_PREFIX, *slugs])
