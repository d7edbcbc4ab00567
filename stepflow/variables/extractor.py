"""Per-step-type extraction of addressable fields from raw step results."""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from ..core.exceptions import ExtractionError
from ..core.logging import get_logger

logger = get_logger(__name__)

ExtractionRule = Callable[[Any], Dict[str, Any]]

REQUEST_ID_PATTERN = re.compile(r"request[_-]?id[:\s=]+([a-zA-Z0-9-]+)", re.IGNORECASE)
USER_ID_PATTERN = re.compile(r"user[_-]?id[:\s=]+([a-zA-Z0-9-]+)", re.IGNORECASE)
ERROR_CODE_PATTERN = re.compile(r"error[_-]?code[:\s=]+([0-9]+)", re.IGNORECASE)
TRACE_ID_PATTERN = re.compile(r"trace[_-]?id[:\s=]+([a-zA-Z0-9-]+)", re.IGNORECASE)


@dataclass
class ExtractionResult:
    """Extracted data record, empty when extraction failed."""
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[ExtractionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def unique(values: Iterable[Any]) -> List[Any]:
    """Distinct values in first-seen order; unhashable values compare by JSON form."""
    seen = set()
    result = []
    for value in values:
        try:
            key = ("h", value)
            hash(key)
        except TypeError:
            key = ("j", json.dumps(value, sort_keys=True, default=str))
        if key in seen:
            continue
        seen.add(key)
        result.append(value)
    return result


def _require_mapping(raw: Any, step_type: str) -> Mapping[str, Any]:
    if not isinstance(raw, Mapping):
        raise ExtractionError(
            f"Expected a mapping result for {step_type} step, got {type(raw).__name__}",
            node_type=step_type
        )
    return raw


def _field(item: Any, *names: str) -> Any:
    """First non-None value among names on a mapping item."""
    if not isinstance(item, Mapping):
        return None
    for name in names:
        value = item.get(name)
        if value is not None:
            return value
    return None


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _extract_patterns(events: List[Any], pattern: re.Pattern) -> List[str]:
    matches = []
    for event in events:
        message = _field(event, "message")
        if not isinstance(message, str):
            continue
        match = pattern.search(message)
        if match and match.group(1):
            matches.append(match.group(1))
    return unique(matches)


def extract_cloudwatch(raw: Any) -> Dict[str, Any]:
    """Log query results: events, message projections and ids mined from messages."""
    raw = _require_mapping(raw, "cloudwatch")
    events = raw.get("events") or []
    extracted: Dict[str, Any] = {
        "events": events,
        "logGroup": _field(raw.get("summary"), "logGroup"),
        "totalEvents": len(events) if isinstance(events, list) else 0,
    }

    if isinstance(events, list):
        extracted["timestamps"] = [_field(event, "timestamp") for event in events]
        extracted["logStreams"] = unique(_field(event, "logStream") for event in events)
        extracted["messages"] = [_field(event, "message") for event in events]

        for key, pattern in (
            ("requestIds", REQUEST_ID_PATTERN),
            ("userIds", USER_ID_PATTERN),
            ("errorCodes", ERROR_CODE_PATTERN),
            ("traceIds", TRACE_ID_PATTERN),
        ):
            found = _extract_patterns(events, pattern)
            if found:
                extracted[key] = found

    return extracted


def extract_dynamodb(raw: Any) -> Dict[str, Any]:
    """Table scan/query results: items plus per-attribute value lists."""
    raw = _require_mapping(raw, "dynamodb")
    items = raw.get("items") or []
    extracted: Dict[str, Any] = {
        "items": items,
        "count": raw.get("count") or 0,
        "scannedCount": raw.get("scannedCount") or 0,
        "tableName": _field(raw.get("summary"), "tableName"),
    }

    if isinstance(items, list):
        attributes: List[str] = []
        for item in items:
            if isinstance(item, Mapping):
                for key in item:
                    if key not in attributes:
                        attributes.append(key)

        for attribute in attributes:
            values = [
                item[attribute] for item in items
                if isinstance(item, Mapping) and item.get(attribute) is not None
            ]
            if values:
                extracted[f"{attribute}Values"] = values
                extracted[f"unique{attribute[:1].upper()}{attribute[1:]}Values"] = unique(values)

    return extracted


def extract_s3(raw: Any) -> Dict[str, Any]:
    """Bucket listings: objects and their keys, sizes and modification times."""
    raw = _require_mapping(raw, "s3")
    objects = raw.get("objects") or []
    extracted: Dict[str, Any] = {
        "objects": objects,
        "bucketName": raw.get("bucketName"),
        "totalObjects": len(objects) if isinstance(objects, list) else 0,
    }

    if isinstance(objects, list):
        extracted["objectKeys"] = [_field(obj, "key", "Key") for obj in objects]
        extracted["objectSizes"] = [_field(obj, "size", "Size") for obj in objects]
        extracted["lastModified"] = [_field(obj, "lastModified", "LastModified") for obj in objects]

    return extracted


def extract_lambda(raw: Any) -> Dict[str, Any]:
    """Function invocations: status, payload and the HTTP-style fields inside a JSON payload."""
    raw = _require_mapping(raw, "lambda")
    extracted: Dict[str, Any] = {
        "functionName": raw.get("functionName"),
        "statusCode": raw.get("statusCode"),
        "payload": raw.get("payload"),
        "logResult": raw.get("logResult"),
        "executionArn": raw.get("executionArn"),
    }

    payload = raw.get("payload")
    parsed: Any = None
    if isinstance(payload, (str, bytes)) and payload:
        try:
            parsed = json.loads(payload)
        except ValueError:
            parsed = None
    elif isinstance(payload, Mapping):
        parsed = dict(payload)

    if parsed is not None:
        extracted["parsedPayload"] = parsed
        if isinstance(parsed, Mapping):
            if parsed.get("statusCode"):
                extracted["responseStatusCode"] = parsed["statusCode"]
            if parsed.get("body"):
                extracted["responseBody"] = parsed["body"]
            if parsed.get("headers"):
                extracted["responseHeaders"] = parsed["headers"]

    return extracted


def extract_emr(raw: Any) -> Dict[str, Any]:
    raw = _require_mapping(raw, "emr")
    return {
        "clusterId": raw.get("clusterId"),
        "clusterName": raw.get("clusterName"),
        "state": raw.get("state"),
        "steps": raw.get("steps") or [],
        "applications": raw.get("applications") or [],
    }


def extract_apigateway(raw: Any) -> Dict[str, Any]:
    raw = _require_mapping(raw, "apigateway")
    return {
        "apiId": raw.get("apiId"),
        "apiName": raw.get("apiName"),
        "stage": raw.get("stage"),
        "endpoints": raw.get("endpoints") or [],
        "methods": raw.get("methods") or [],
    }


def extract_generic(raw: Any) -> Dict[str, Any]:
    """Shallow copy of a result's own non-callable fields.

    Lists and scalars have no named fields and yield an empty record; index
    keys are not synthesized for list results.
    """
    if isinstance(raw, Mapping):
        return {key: value for key, value in raw.items() if not callable(value)}
    if hasattr(raw, "model_dump"):
        return {key: value for key, value in raw.model_dump().items() if not callable(value)}
    if hasattr(raw, "__dict__") and not isinstance(raw, type):
        return {
            key: value for key, value in vars(raw).items()
            if not key.startswith("_") and not callable(value)
        }
    return {}


BUILTIN_RULES: Dict[str, ExtractionRule] = {
    "cloudwatch": extract_cloudwatch,
    "dynamodb": extract_dynamodb,
    "s3": extract_s3,
    "lambda": extract_lambda,
    "emr": extract_emr,
    "apigateway": extract_apigateway,
}


class VariableExtractor:
    """Builds extracted-data records from raw step results.

    Rules are looked up by lower-cased step type; types without a rule fall
    back to ``extract_generic``.
    """

    def __init__(self, rules: Optional[Dict[str, ExtractionRule]] = None, include_builtin: bool = True):
        self._rules: Dict[str, ExtractionRule] = dict(BUILTIN_RULES) if include_builtin else {}
        for step_type, rule in (rules or {}).items():
            self.register_rule(step_type, rule)

    def register_rule(self, step_type: str, rule: ExtractionRule) -> None:
        self._rules[step_type.strip().lower()] = rule

    def has_rule(self, step_type: str) -> bool:
        return step_type.strip().lower() in self._rules

    def try_extract(self, node_id: str, node_type: str, raw_output: Any) -> ExtractionResult:
        """Extract without raising; a failure yields an empty record and the error."""
        key = (node_type or "").strip().lower()
        rule = self._rules.get(key)
        if rule is None:
            logger.warning(f"Unknown step type '{node_type}' for variable extraction, copying top-level fields")
            rule = extract_generic

        try:
            extracted = rule(raw_output)
        except ExtractionError as e:
            e.add_context(node_id=node_id, node_type=node_type)
            logger.error(f"Failed to extract variables for step {node_id}: {e.message}")
            return ExtractionResult(error=e)
        except Exception as e:
            error = ExtractionError(
                f"Failed to extract variables: {e}",
                node_id=node_id,
                node_type=node_type
            )
            logger.error(f"Failed to extract variables for step {node_id}: {e}", exc_info=True)
            return ExtractionResult(error=error)

        if not isinstance(extracted, Mapping):
            error = ExtractionError(
                f"Extraction rule for {node_type} returned {type(extracted).__name__}, expected a mapping",
                node_id=node_id,
                node_type=node_type
            )
            logger.error(f"Failed to extract variables for step {node_id}: {error.message}")
            return ExtractionResult(error=error)

        extracted = {str(key): value for key, value in extracted.items()}
        logger.debug(f"Extracted variables for step {node_id}: {sorted(extracted)}")
        return ExtractionResult(data=extracted)

    def extract(self, node_id: str, node_type: str, raw_output: Any) -> Dict[str, Any]:
        """Extracted-data record for a step; never raises."""
        return self.try_extract(node_id, node_type, raw_output).data
