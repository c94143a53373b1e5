"""Package Catalog

Describes the packages package-call nodes may name: which identifier the
snippet sees, which implementation backs it, and what a node runs when no
code is configured.

Key Components:
- PackageSpec: one catalog entry
- PackageCatalog: pluggable registry of entries
- DEFAULT_CATALOG: built-in entries backed by flowbench.sandbox.mocks
- load_binding: resolve an entry's implementation (used inside the sandbox child)
"""

from __future__ import annotations

import importlib
import importlib.util
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

IDENTITY_SNIPPET = "return input"


@dataclass
class PackageSpec:
    """Catalog entry for one package.

    Attributes:
        name: Package name as used in node data (e.g. "lodash")
        binding: Identifier the snippet sees (e.g. "_")
        mock: "module:attribute" path of the built-in implementation
        module: Optional importable module used instead of the mock when preferred and installed
        default_code: Snippet run when the node has no code configured
        description: Short human-readable summary
        input_type / output_type: Informal type names for UI and templates
        examples: Sample snippets
    """

    name: str
    binding: str
    mock: str
    module: Optional[str] = None
    default_code: str = IDENTITY_SNIPPET
    description: str = ""
    input_type: str = "any"
    output_type: str = "any"
    examples: List[str] = field(default_factory=list)

    def __post_init__(self):
        if not self.name:
            raise ValueError("package name cannot be empty")
        if not self.binding.isidentifier():
            raise ValueError(f"binding must be a valid identifier: {self.binding!r}")
        if ":" not in self.mock:
            raise ValueError(f"mock must be a 'module:attribute' path: {self.mock!r}")


def load_binding(mock: str, module: Optional[str] = None, prefer_real: bool = False) -> Any:
    """Import the object a snippet will see for a package.

    With ``prefer_real`` set and ``module`` installed, the real module wins;
    otherwise the built-in implementation at ``mock`` is returned.
    """
    if prefer_real and module and importlib.util.find_spec(module) is not None:
        logger.debug(f"Binding real module {module}")
        return importlib.import_module(module)

    module_name, _, attribute = mock.partition(":")
    return getattr(importlib.import_module(module_name), attribute)


class PackageCatalog:
    """Name -> PackageSpec registry."""

    def __init__(self, specs: Optional[List[PackageSpec]] = None):
        self._specs: Dict[str, PackageSpec] = {}
        for spec in specs or []:
            self.register(spec)

    def register(self, spec: PackageSpec) -> None:
        self._specs[spec.name] = spec

    def get(self, name: str) -> Optional[PackageSpec]:
        return self._specs.get(name)

    def names(self) -> List[str]:
        return list(self._specs)

    def default_code(self, name: str) -> str:
        spec = self._specs.get(name)
        return spec.default_code if spec else IDENTITY_SNIPPET

    def copy(self) -> "PackageCatalog":
        return PackageCatalog(list(self._specs.values()))

    def __contains__(self, name: str) -> bool:
        return name in self._specs


_MOCKS = "flowbench.sandbox.mocks"

DEFAULT_CATALOG = PackageCatalog([
    PackageSpec(
        name="lodash",
        binding="_",
        mock=f"{_MOCKS}:lodash",
        default_code="return _.map(input, lambda x: x * 2)",
        description="Utility library for arrays, objects and collections",
        input_type="array",
        output_type="array",
        examples=[
            "return _.map(input, lambda x: x * 2)",
            "return _.filter(input, lambda x: x > 5)",
            "return _.groupBy(input, 'category')",
        ],
    ),
    PackageSpec(
        name="papaparse",
        binding="Papa",
        mock=f"{_MOCKS}:papaparse",
        default_code="return Papa.parse(input, {'header': True})",
        description="CSV parser and serializer",
        input_type="string",
        output_type="object",
        examples=[
            "return Papa.parse(input, {'header': True})['data']",
            "return Papa.unparse(input)",
        ],
    ),
    PackageSpec(
        name="dayjs",
        binding="dayjs",
        mock=f"{_MOCKS}:dayjs",
        default_code="return dayjs(input).format('YYYY-MM-DD')",
        description="Date parsing, manipulation and formatting",
        input_type="string",
        output_type="string",
        examples=[
            "return dayjs(input).format('YYYY-MM-DD')",
            "return dayjs(input).add(7, 'day').format('YYYY-MM-DD')",
        ],
    ),
    PackageSpec(
        name="validator",
        binding="validator",
        mock=f"{_MOCKS}:validator",
        default_code="return validator.isEmail(input)",
        description="String validators",
        input_type="string",
        output_type="boolean",
        examples=[
            "return validator.isEmail(input)",
            "return validator.isURL(input)",
        ],
    ),
    PackageSpec(
        name="uuid",
        binding="uuid",
        mock=f"{_MOCKS}:uuid",
        default_code="return uuid.v4()",
        description="RFC 4122 identifiers",
        input_type="any",
        output_type="string",
        examples=["return uuid.v4()"],
    ),
    PackageSpec(
        name="mathjs",
        binding="math",
        mock=f"{_MOCKS}:mathjs",
        default_code="return math.evaluate(input)",
        description="Arithmetic expression evaluation and statistics",
        input_type="string",
        output_type="number",
        examples=[
            "return math.evaluate(input)",
            "return math.mean(input)",
        ],
    ),
    PackageSpec(
        name="joi",
        binding="Joi",
        mock=f"{_MOCKS}:joi",
        default_code=(
            "schema = Joi.object({'name': Joi.string().required(), 'email': Joi.string().email()})\n"
            "return schema.validate(input)"
        ),
        description="Declarative object schema validation",
        input_type="object",
        output_type="object",
        examples=["return Joi.string().min(3).validate(input)"],
    ),
    PackageSpec(
        name="crypto-js",
        binding="CryptoJS",
        mock=f"{_MOCKS}:crypto_js",
        default_code="return CryptoJS.SHA256(input)",
        description="Hashing and HMAC",
        input_type="string",
        output_type="string",
        examples=[
            "return CryptoJS.SHA256(input)",
            "return CryptoJS.HmacSHA256(input, 'secret')",
        ],
    ),
    PackageSpec(
        name="marked",
        binding="marked",
        mock=f"{_MOCKS}:marked",
        default_code="return marked.parse(input)",
        description="Markdown to HTML",
        input_type="string",
        output_type="string",
        examples=["return marked.parse(input)"],
    ),
])

DEFAULT_ALLOWED_PACKAGES = tuple(DEFAULT_CATALOG.names())


def generate_package_code(name: str, catalog: PackageCatalog = DEFAULT_CATALOG) -> str:
    return catalog.default_code(name)


def is_package_supported(name: str, catalog: PackageCatalog = DEFAULT_CATALOG) -> bool:
    return name in catalog


def get_package_input_type(name: str, catalog: PackageCatalog = DEFAULT_CATALOG) -> str:
    spec = catalog.get(name)
    return spec.input_type if spec else "any"


def get_package_output_type(name: str, catalog: PackageCatalog = DEFAULT_CATALOG) -> str:
    spec = catalog.get(name)
    return spec.output_type if spec else "any"
