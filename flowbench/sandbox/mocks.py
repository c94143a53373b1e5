"""Built-in Package Implementations

Small pure-Python stand-ins for the packages package-call nodes may use.
Each object exposes the subset of the package's public API that workflow
snippets rely on, under the package's own method names. They are loaded
inside the sandbox child by "module:attribute" path, see packages.py.

Key Components:
- lodash (bound as ``_``): collection helpers
- papaparse (``Papa``): CSV parse / unparse
- dayjs: date parsing, arithmetic and formatting
- validator: string validators
- uuid: random identifiers
- mathjs (``math``): safe arithmetic expression evaluation and statistics
- crypto_js (``CryptoJS``): hashing and HMAC
- marked: a minimal Markdown to HTML renderer
- joi (``Joi``): declarative value validation
"""

from __future__ import annotations

import ast
import csv
import hashlib
import hmac
import html
import io
import math as _math
import operator
import re
import statistics
import uuid as _uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional

_MISSING = object()


def _iteratee(fn: Any) -> Callable[[Any], Any]:
    """Turn a lodash-style iteratee (callable, key string or None) into a callable."""
    if fn is None:
        return lambda value: value
    if callable(fn):
        return fn
    if isinstance(fn, str):
        return lambda value: _Lodash.get(value, fn)
    raise TypeError(f"Unsupported iteratee: {fn!r}")


def _values(collection: Any) -> List[Any]:
    if collection is None:
        return []
    if isinstance(collection, dict):
        return list(collection.values())
    return list(collection)


# =====================================================================
# lodash
# =====================================================================

class _Lodash:
    @staticmethod
    def map(collection, fn=None):
        f = _iteratee(fn)
        return [f(v) for v in _values(collection)]

    @staticmethod
    def filter(collection, predicate=None):
        f = _iteratee(predicate)
        return [v for v in _values(collection) if f(v)]

    @staticmethod
    def reject(collection, predicate=None):
        f = _iteratee(predicate)
        return [v for v in _values(collection) if not f(v)]

    @staticmethod
    def find(collection, predicate=None):
        f = _iteratee(predicate)
        for v in _values(collection):
            if f(v):
                return v
        return None

    @staticmethod
    def reduce(collection, fn, initial=_MISSING):
        items = _values(collection)
        if initial is _MISSING:
            if not items:
                return None
            acc, items = items[0], items[1:]
        else:
            acc = initial
        for v in items:
            acc = fn(acc, v)
        return acc

    @staticmethod
    def merge(*objects):
        def _merge(dst: dict, src: dict) -> dict:
            for key, value in src.items():
                if isinstance(value, dict) and isinstance(dst.get(key), dict):
                    dst[key] = _merge(dict(dst[key]), value)
                else:
                    dst[key] = value
            return dst

        result: dict = {}
        for obj in objects:
            if obj:
                result = _merge(result, obj)
        return result

    @staticmethod
    def get(obj, path, default=None):
        if isinstance(path, str):
            parts = [p for p in re.split(r"\.|\[(\d+)\]", path) if p]
        else:
            parts = list(path)
        current = obj
        for part in parts:
            if isinstance(current, dict):
                if part not in current:
                    return default
                current = current[part]
            elif isinstance(current, (list, tuple)):
                try:
                    current = current[int(part)]
                except (ValueError, IndexError):
                    return default
            else:
                return default
        return current

    @staticmethod
    def chunk(items, size=1):
        items = list(items or [])
        size = max(1, int(size))
        return [items[i:i + size] for i in range(0, len(items), size)]

    @staticmethod
    def flatten(items):
        result = []
        for item in items or []:
            if isinstance(item, (list, tuple)):
                result.extend(item)
            else:
                result.append(item)
        return result

    @staticmethod
    def uniq(items):
        seen, result = [], []
        for item in items or []:
            if item not in seen:
                seen.append(item)
                result.append(item)
        return result

    @staticmethod
    def sum(items):
        return sum(items or [])

    @staticmethod
    def sumBy(items, fn):
        f = _iteratee(fn)
        return sum(f(v) for v in _values(items))

    @staticmethod
    def mean(items):
        items = list(items or [])
        return sum(items) / len(items) if items else None

    @staticmethod
    def meanBy(items, fn):
        f = _iteratee(fn)
        values = [f(v) for v in _values(items)]
        return sum(values) / len(values) if values else None

    @staticmethod
    def max(items):
        items = list(items or [])
        return max(items) if items else None

    @staticmethod
    def min(items):
        items = list(items or [])
        return min(items) if items else None

    @staticmethod
    def minBy(items, fn):
        values = _values(items)
        return min(values, key=_iteratee(fn)) if values else None

    @staticmethod
    def maxBy(items, fn):
        values = _values(items)
        return max(values, key=_iteratee(fn)) if values else None

    @staticmethod
    def groupBy(collection, fn):
        f = _iteratee(fn)
        groups: Dict[str, list] = {}
        for v in _values(collection):
            groups.setdefault(str(f(v)), []).append(v)
        return groups

    @staticmethod
    def countBy(collection, fn=None):
        f = _iteratee(fn)
        counts: Dict[str, int] = {}
        for v in _values(collection):
            key = str(f(v))
            counts[key] = counts.get(key, 0) + 1
        return counts

    @staticmethod
    def sortBy(collection, fn=None):
        return sorted(_values(collection), key=_iteratee(fn))

    @staticmethod
    def pick(obj, *keys):
        flat = _Lodash.flatten(keys)
        return {k: obj[k] for k in flat if k in (obj or {})}

    @staticmethod
    def omit(obj, *keys):
        flat = set(_Lodash.flatten(keys))
        return {k: v for k, v in (obj or {}).items() if k not in flat}

    @staticmethod
    def keys(obj):
        return list((obj or {}).keys())

    @staticmethod
    def values(obj):
        return list((obj or {}).values())

    @staticmethod
    def size(collection):
        return len(collection or [])

    @staticmethod
    def isEmpty(value):
        return not value


lodash = _Lodash()


# =====================================================================
# papaparse
# =====================================================================

def _dynamic(value: str) -> Any:
    if value == "":
        return value
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        return value


class _Papa:
    @staticmethod
    def parse(text, config=None):
        config = config or {}
        delimiter = config.get("delimiter") or ","
        reader = csv.reader(io.StringIO(text or ""), delimiter=delimiter)
        rows = [row for row in reader]
        if config.get("skipEmptyLines", True):
            rows = [row for row in rows if any(cell.strip() for cell in row)]

        convert = _dynamic if config.get("dynamicTyping") else (lambda v: v)
        fields: List[str] = []

        if config.get("header"):
            fields = rows[0] if rows else []
            data = [
                {field: convert(row[i]) if i < len(row) else "" for i, field in enumerate(fields)}
                for row in rows[1:]
            ]
        else:
            data = [[convert(cell) for cell in row] for row in rows]

        return {
            "data": data,
            "errors": [],
            "meta": {"delimiter": delimiter, "fields": fields},
        }

    @staticmethod
    def unparse(data, config=None):
        config = config or {}
        buf = io.StringIO()
        writer = csv.writer(buf, delimiter=config.get("delimiter") or ",", lineterminator="\r\n")
        rows = list(data or [])
        if rows and isinstance(rows[0], dict):
            fields = list(rows[0].keys())
            writer.writerow(fields)
            for row in rows:
                writer.writerow([row.get(f, "") for f in fields])
        else:
            for row in rows:
                writer.writerow(row)
        return buf.getvalue().rstrip("\r\n")


papaparse = _Papa()


# =====================================================================
# dayjs
# =====================================================================

_UNITS = {
    "millisecond": "milliseconds", "ms": "milliseconds",
    "second": "seconds", "s": "seconds",
    "minute": "minutes", "m": "minutes",
    "hour": "hours", "h": "hours",
    "day": "days", "d": "days",
    "week": "weeks", "w": "weeks",
}

_FORMAT_TOKENS = re.compile(r"\[([^\]]*)]|YYYY|YY|MMMM|MMM|MM|M|DD|D|dddd|HH|H|hh|h|mm|m|ss|s|SSS|A|a|Z")


def _parse_date(value: Any) -> datetime:
    if value is None:
        return datetime.now(timezone.utc)
    if isinstance(value, DayJs):
        return value._dt
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    raise ValueError(f"Invalid date: {value!r}")


class DayJs:
    def __init__(self, dt: datetime):
        self._dt = dt

    def format(self, pattern: str = "YYYY-MM-DDTHH:mm:ssZ") -> str:
        dt = self._dt

        def replace(match: "re.Match") -> str:
            if match.group(1) is not None:
                return match.group(1)
            token = match.group(0)
            return {
                "YYYY": f"{dt.year:04d}",
                "YY": f"{dt.year % 100:02d}",
                "MMMM": dt.strftime("%B"),
                "MMM": dt.strftime("%b"),
                "MM": f"{dt.month:02d}",
                "M": str(dt.month),
                "DD": f"{dt.day:02d}",
                "D": str(dt.day),
                "dddd": dt.strftime("%A"),
                "HH": f"{dt.hour:02d}",
                "H": str(dt.hour),
                "hh": f"{(dt.hour % 12) or 12:02d}",
                "h": str((dt.hour % 12) or 12),
                "mm": f"{dt.minute:02d}",
                "m": str(dt.minute),
                "ss": f"{dt.second:02d}",
                "s": str(dt.second),
                "SSS": f"{dt.microsecond // 1000:03d}",
                "A": "AM" if dt.hour < 12 else "PM",
                "a": "am" if dt.hour < 12 else "pm",
                "Z": dt.strftime("%z")[:3] + ":" + dt.strftime("%z")[3:] if dt.utcoffset() is not None else "",
            }[token]

        return _FORMAT_TOKENS.sub(replace, pattern)

    def _shift(self, amount: float, unit: str) -> "DayJs":
        unit = unit.rstrip("s") if unit not in ("s", "ms") else unit
        if unit in ("month", "M"):
            months = self._dt.month - 1 + int(amount)
            year = self._dt.year + months // 12
            month = months % 12 + 1
            day = min(self._dt.day, [31, 29 if year % 4 == 0 and (year % 100 != 0 or year % 400 == 0) else 28,
                                     31, 30, 31, 30, 31, 31, 30, 31, 30, 31][month - 1])
            return DayJs(self._dt.replace(year=year, month=month, day=day))
        if unit in ("year", "y"):
            return self._shift(amount * 12, "month")
        key = _UNITS.get(unit)
        if key is None:
            raise ValueError(f"Unsupported unit: {unit}")
        return DayJs(self._dt + timedelta(**{key: amount}))

    def add(self, amount: float, unit: str = "day") -> "DayJs":
        return self._shift(amount, unit)

    def subtract(self, amount: float, unit: str = "day") -> "DayJs":
        return self._shift(-amount, unit)

    def diff(self, other: Any = None, unit: str = "millisecond") -> float:
        delta = self._dt - _parse_date(other)
        key = _UNITS.get(unit.rstrip("s") if unit not in ("s", "ms") else unit, "milliseconds")
        if key == "milliseconds":
            return int(delta.total_seconds() * 1000)
        return int(delta / timedelta(**{key: 1}))

    def isBefore(self, other: Any) -> bool:
        return self._dt < _parse_date(other)

    def isAfter(self, other: Any) -> bool:
        return self._dt > _parse_date(other)

    def year(self) -> int:
        return self._dt.year

    def month(self) -> int:
        # dayjs months are zero-based
        return self._dt.month - 1

    def date(self) -> int:
        return self._dt.day

    def valueOf(self) -> int:
        return int(self._dt.timestamp() * 1000)

    def toISOString(self) -> str:
        return self._dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.") + \
            f"{self._dt.microsecond // 1000:03d}Z"

    def isValid(self) -> bool:
        return True


def dayjs(value: Any = None) -> DayJs:
    return DayJs(_parse_date(value))


# =====================================================================
# validator
# =====================================================================

_EMAIL_RE = re.compile(r"^[A-Za-z0-9.!#$%&'*+/=?^_`{|}~-]+@[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)*\.[A-Za-z]{2,}$")
_URL_RE = re.compile(r"^(https?|ftp)://[^\s/$.?#][^\s]*$", re.IGNORECASE)
_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-[1-5][0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$", re.IGNORECASE)


class _Validator:
    @staticmethod
    def isEmail(value: str) -> bool:
        return bool(_EMAIL_RE.match(str(value)))

    @staticmethod
    def isURL(value: str) -> bool:
        return bool(_URL_RE.match(str(value)))

    @staticmethod
    def isNumeric(value: str) -> bool:
        return bool(re.match(r"^[+-]?\d+(\.\d+)?$", str(value)))

    @staticmethod
    def isAlpha(value: str) -> bool:
        return bool(re.match(r"^[A-Za-z]+$", str(value)))

    @staticmethod
    def isAlphanumeric(value: str) -> bool:
        return bool(re.match(r"^[A-Za-z0-9]+$", str(value)))

    @staticmethod
    def isUUID(value: str) -> bool:
        return bool(_UUID_RE.match(str(value)))

    @staticmethod
    def isEmpty(value: str) -> bool:
        return len(str(value)) == 0

    @staticmethod
    def isLength(value: str, options: Optional[dict] = None) -> bool:
        options = options or {}
        length = len(str(value))
        upper = options.get("max")
        return length >= options.get("min", 0) and (upper is None or length <= upper)

    @staticmethod
    def escape(value: str) -> str:
        return html.escape(str(value))


validator = _Validator()


# =====================================================================
# uuid
# =====================================================================

class _Uuid:
    @staticmethod
    def v4() -> str:
        return str(_uuid.uuid4())

    @staticmethod
    def validate(value: str) -> bool:
        return bool(_UUID_RE.match(str(value)))


uuid = _Uuid()


# =====================================================================
# mathjs
# =====================================================================

_MATH_BIN_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: operator.mul,
    ast.Div: operator.truediv,
    ast.Mod: operator.mod,
    ast.Pow: operator.pow,
    ast.FloorDiv: operator.floordiv,
}

_MATH_UNARY_OPS = {
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}

_MATH_FUNCTIONS: Dict[str, Callable[..., Any]] = {
    "sqrt": _math.sqrt,
    "abs": abs,
    "round": round,
    "floor": _math.floor,
    "ceil": _math.ceil,
    "log": _math.log,
    "log10": _math.log10,
    "exp": _math.exp,
    "sin": _math.sin,
    "cos": _math.cos,
    "tan": _math.tan,
    "min": min,
    "max": max,
}

_MATH_CONSTANTS = {"pi": _math.pi, "e": _math.e}


class _MathJs:
    pi = _math.pi
    e = _math.e

    def evaluate(self, expression: str, scope: Optional[dict] = None) -> Any:
        text = str(expression).replace("^", "**")
        tree = ast.parse(text, mode="eval")
        return self._eval(tree.body, scope or {})

    def _eval(self, node: ast.AST, scope: dict) -> Any:
        if isinstance(node, ast.Constant) and isinstance(node.value, (int, float)):
            return node.value
        if isinstance(node, ast.Name):
            if node.id in scope:
                return scope[node.id]
            if node.id in _MATH_CONSTANTS:
                return _MATH_CONSTANTS[node.id]
            raise ValueError(f"Undefined symbol {node.id}")
        if isinstance(node, ast.BinOp) and type(node.op) in _MATH_BIN_OPS:
            return _MATH_BIN_OPS[type(node.op)](self._eval(node.left, scope), self._eval(node.right, scope))
        if isinstance(node, ast.UnaryOp) and type(node.op) in _MATH_UNARY_OPS:
            return _MATH_UNARY_OPS[type(node.op)](self._eval(node.operand, scope))
        if isinstance(node, ast.Call) and isinstance(node.func, ast.Name) and node.func.id in _MATH_FUNCTIONS:
            args = [self._eval(arg, scope) for arg in node.args]
            return _MATH_FUNCTIONS[node.func.id](*args)
        raise ValueError(f"Unsupported expression: {ast.dump(node)[:80]}")

    def sum(self, values: Iterable[float]) -> float:
        return sum(values)

    def mean(self, values: Iterable[float]) -> float:
        return statistics.fmean(list(values))

    def median(self, values: Iterable[float]) -> float:
        return statistics.median(list(values))

    def std(self, values: Iterable[float]) -> float:
        return statistics.stdev(list(values))

    def round(self, value: float, digits: int = 0) -> float:
        return round(value, digits)

    def sqrt(self, value: float) -> float:
        return _math.sqrt(value)

    def pow(self, base: float, exponent: float) -> float:
        return base ** exponent


mathjs = _MathJs()


# =====================================================================
# crypto-js
# =====================================================================

class _CryptoJS:
    @staticmethod
    def MD5(message: str) -> str:
        return hashlib.md5(str(message).encode("utf-8")).hexdigest()

    @staticmethod
    def SHA1(message: str) -> str:
        return hashlib.sha1(str(message).encode("utf-8")).hexdigest()

    @staticmethod
    def SHA256(message: str) -> str:
        return hashlib.sha256(str(message).encode("utf-8")).hexdigest()

    @staticmethod
    def SHA512(message: str) -> str:
        return hashlib.sha512(str(message).encode("utf-8")).hexdigest()

    @staticmethod
    def HmacSHA256(message: str, key: str) -> str:
        return hmac.new(str(key).encode("utf-8"), str(message).encode("utf-8"), hashlib.sha256).hexdigest()


crypto_js = _CryptoJS()


# =====================================================================
# marked
# =====================================================================

def _inline(text: str) -> str:
    text = html.escape(text, quote=False)
    text = re.sub(r"`([^`]+)`", r"<code>\1</code>", text)
    text = re.sub(r"\*\*([^*]+)\*\*", r"<strong>\1</strong>", text)
    text = re.sub(r"\*([^*]+)\*", r"<em>\1</em>", text)
    text = re.sub(r"\[([^\]]+)\]\(([^)\s]+)\)", r'<a href="\2">\1</a>', text)
    return text


class _Marked:
    def parse(self, markdown: str) -> str:
        out: List[str] = []
        paragraph: List[str] = []
        in_list = False

        def flush_paragraph():
            if paragraph:
                out.append(f"<p>{_inline(' '.join(paragraph))}</p>")
                paragraph.clear()

        for raw in str(markdown or "").splitlines():
            line = raw.rstrip()
            heading = re.match(r"^(#{1,6})\s+(.*)$", line)
            item = re.match(r"^\s*[-*+]\s+(.*)$", line)

            if item:
                flush_paragraph()
                if not in_list:
                    out.append("<ul>")
                    in_list = True
                out.append(f"<li>{_inline(item.group(1))}</li>")
                continue
            if in_list:
                out.append("</ul>")
                in_list = False

            if heading:
                flush_paragraph()
                level = len(heading.group(1))
                out.append(f"<h{level}>{_inline(heading.group(2))}</h{level}>")
            elif not line.strip():
                flush_paragraph()
            else:
                paragraph.append(line.strip())

        flush_paragraph()
        if in_list:
            out.append("</ul>")
        return "\n".join(out)

    def __call__(self, markdown: str) -> str:
        return self.parse(markdown)


marked = _Marked()


# =====================================================================
# joi
# =====================================================================

class JoiSchema:
    def __init__(self, kind: str, keys: Optional[Dict[str, "JoiSchema"]] = None):
        self.kind = kind
        self.keys = keys or {}
        self.is_required = False
        self.rules: List[tuple] = []

    def required(self) -> "JoiSchema":
        self.is_required = True
        return self

    def min(self, limit: float) -> "JoiSchema":
        self.rules.append(("min", limit))
        return self

    def max(self, limit: float) -> "JoiSchema":
        self.rules.append(("max", limit))
        return self

    def email(self) -> "JoiSchema":
        self.rules.append(("email", None))
        return self

    def _check(self, value: Any, label: str) -> Optional[str]:
        if value is None:
            return f'"{label}" is required' if self.is_required else None

        type_checks = {
            "string": lambda v: isinstance(v, str),
            "number": lambda v: isinstance(v, (int, float)) and not isinstance(v, bool),
            "boolean": lambda v: isinstance(v, bool),
            "array": lambda v: isinstance(v, list),
            "object": lambda v: isinstance(v, dict),
            "any": lambda v: True,
        }
        if not type_checks[self.kind](value):
            return f'"{label}" must be a {self.kind}'

        for rule, arg in self.rules:
            size = value if self.kind == "number" else len(value) if hasattr(value, "__len__") else value
            if rule == "min" and size < arg:
                return f'"{label}" must be at least {arg}'
            if rule == "max" and size > arg:
                return f'"{label}" must be at most {arg}'
            if rule == "email" and not _Validator.isEmail(value):
                return f'"{label}" must be a valid email'

        if self.kind == "object":
            for key, schema in self.keys.items():
                message = schema._check(value.get(key), key)
                if message:
                    return message
        return None

    def validate(self, value: Any) -> dict:
        message = self._check(value, "value")
        if message:
            return {"value": value, "error": {"message": message}}
        return {"value": value}


class _Joi:
    @staticmethod
    def object(keys: Optional[Dict[str, JoiSchema]] = None) -> JoiSchema:
        return JoiSchema("object", keys)

    @staticmethod
    def string() -> JoiSchema:
        return JoiSchema("string")

    @staticmethod
    def number() -> JoiSchema:
        return JoiSchema("number")

    @staticmethod
    def boolean() -> JoiSchema:
        return JoiSchema("boolean")

    @staticmethod
    def array() -> JoiSchema:
        return JoiSchema("array")

    @staticmethod
    def any() -> JoiSchema:
        return JoiSchema("any")


joi = _Joi()
