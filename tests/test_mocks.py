"""Unit tests for the built-in package implementations."""

import pytest

from flowbench.sandbox.mocks import (
    crypto_js,
    dayjs,
    joi,
    lodash as _,
    marked,
    mathjs,
    papaparse,
    uuid,
    validator,
)
from flowbench.sandbox.packages import (
    DEFAULT_CATALOG,
    PackageSpec,
    generate_package_code,
    get_package_input_type,
    get_package_output_type,
    is_package_supported,
    load_binding,
)


class TestLodash:

    def test_collection_helpers(self):
        assert _.map([1, 2], lambda x: x + 1) == [2, 3]
        assert _.filter([1, 2, 3, 4], lambda x: x % 2 == 0) == [2, 4]
        assert _.reject([1, 2, 3], lambda x: x > 1) == [1]
        assert _.find([{"id": 1}, {"id": 2}], lambda r: r["id"] == 2) == {"id": 2}
        assert _.reduce([1, 2, 3], lambda acc, x: acc + x, 10) == 16

    def test_string_iteratee(self):
        rows = [{"team": "a", "n": 1}, {"team": "b", "n": 2}, {"team": "a", "n": 3}]
        assert _.map(rows, "n") == [1, 2, 3]
        assert _.groupBy(rows, "team") == {"a": [rows[0], rows[2]], "b": [rows[1]]}
        assert _.countBy(rows, "team") == {"a": 2, "b": 1}
        assert _.sumBy(rows, "n") == 6
        assert _.maxBy(rows, "n") == rows[2]
        assert _.sortBy(rows, lambda r: -r["n"])[0] == rows[2]

    def test_get_with_path(self):
        data = {"a": {"b": [{"c": 5}]}}
        assert _.get(data, "a.b[0].c") == 5
        assert _.get(data, "a.x", "missing") == "missing"

    def test_arrays(self):
        assert _.chunk([1, 2, 3, 4, 5], 2) == [[1, 2], [3, 4], [5]]
        assert _.flatten([1, [2, 3], [4]]) == [1, 2, 3, 4]
        assert _.uniq([1, 2, 1, 3]) == [1, 2, 3]
        assert _.mean([]) is None
        assert _.mean([2, 4]) == 3

    def test_objects(self):
        assert _.merge({"a": {"x": 1}}, {"a": {"y": 2}}) == {"a": {"x": 1, "y": 2}}
        assert _.pick({"a": 1, "b": 2}, ["a"]) == {"a": 1}
        assert _.omit({"a": 1, "b": 2}, "a") == {"b": 2}
        assert _.isEmpty({}) is True
        assert _.size([1, 2]) == 2


class TestPapa:

    def test_parse_with_header_and_typing(self):
        parsed = papaparse.parse("name,age\nAda,36\n\nBob,41.5\n", {"header": True, "dynamicTyping": True})
        assert parsed["data"] == [{"name": "Ada", "age": 36}, {"name": "Bob", "age": 41.5}]
        assert parsed["meta"]["fields"] == ["name", "age"]
        assert parsed["errors"] == []

    def test_parse_without_header(self):
        assert papaparse.parse("a;b", {"delimiter": ";"})["data"] == [["a", "b"]]

    def test_unparse(self):
        assert papaparse.unparse([{"a": 1, "b": 2}, {"a": 3, "b": 4}]) == "a,b\r\n1,2\r\n3,4"


class TestDayjs:

    def test_format(self):
        assert dayjs("2024-03-05T14:07:09Z").format("YYYY-MM-DD HH:mm:ss") == "2024-03-05 14:07:09"
        assert dayjs("2024-03-05").format("D MMM YY [at] h A") == "5 Mar 24 at 12 AM"

    def test_arithmetic(self):
        start = dayjs("2024-01-31")
        assert start.add(1, "month").format("YYYY-MM-DD") == "2024-02-29"
        assert start.subtract(2, "days").format("YYYY-MM-DD") == "2024-01-29"
        assert start.add(1, "year").year() == 2025
        assert dayjs("2024-01-10").diff("2024-01-03", "day") == 7

    def test_accessors(self):
        value = dayjs("2024-12-25")
        assert value.month() == 11
        assert value.date() == 25
        assert value.isAfter("2024-01-01")
        assert value.isBefore(dayjs("2025-01-01"))
        assert value.toISOString() == "2024-12-25T00:00:00.000Z"
        assert dayjs(value.valueOf()).toISOString() == value.toISOString()


class TestValidators:

    def test_validator(self):
        assert validator.isEmail("ada@example.com")
        assert not validator.isEmail("ada@")
        assert validator.isURL("https://example.com/x")
        assert validator.isNumeric("-3.5")
        assert validator.isLength("abc", {"min": 2, "max": 3})
        assert not validator.isLength("abcd", {"max": 3})
        assert validator.escape("<b>") == "&lt;b&gt;"

    def test_uuid(self):
        value = uuid.v4()
        assert uuid.validate(value)
        assert validator.isUUID(value)
        assert not uuid.validate("not-a-uuid")

    def test_joi_object(self):
        schema = joi.object({"name": joi.string().required(), "email": joi.string().email()})
        assert schema.validate({"name": "Ada"}) == {"value": {"name": "Ada"}}
        assert schema.validate({})["error"]["message"] == '"name" is required'
        assert "valid email" in schema.validate({"name": "Ada", "email": "x"})["error"]["message"]

    def test_joi_bounds(self):
        assert "at least 3" in joi.string().min(3).validate("ab")["error"]["message"]
        assert "error" not in joi.number().max(10).validate(10)
        assert joi.number().validate(True)["error"]["message"] == '"value" must be a number'


class TestMathAndCrypto:

    def test_evaluate(self):
        assert mathjs.evaluate("2 ^ 3 + sqrt(16)") == 12
        assert mathjs.evaluate("x * pi", {"x": 2}) == pytest.approx(6.283185, rel=1e-6)

    @pytest.mark.parametrize("expression", ["__import__('os')", "(1).real", "[1, 2]", "y + 1"])
    def test_evaluate_rejects_non_arithmetic(self, expression):
        with pytest.raises(ValueError):
            mathjs.evaluate(expression)

    def test_statistics(self):
        assert mathjs.mean([1, 2, 3]) == 2
        assert mathjs.median([5, 1, 3]) == 3
        assert mathjs.round(3.14159, 2) == 3.14

    def test_hashes(self):
        assert crypto_js.MD5("abc") == "900150983cd24fb0d6963f7d28e17f72"
        assert crypto_js.SHA256("abc").startswith("ba7816bf")
        assert len(crypto_js.HmacSHA256("msg", "key")) == 64


class TestMarked:

    def test_blocks_and_inline(self):
        html = marked.parse("# Title\n\nSome **bold** and `code`.\n\n- one\n- [two](http://x)")
        assert html == (
            "<h1>Title</h1>\n"
            "<p>Some <strong>bold</strong> and <code>code</code>.</p>\n"
            "<ul>\n<li>one</li>\n"
            '<li><a href="http://x">two</a></li>\n'
            "</ul>"
        )

    def test_escapes_html(self):
        assert marked("<script>") == "<p>&lt;script&gt;</p>"


class TestCatalog:

    def test_default_entries(self):
        assert DEFAULT_CATALOG.get("lodash").binding == "_"
        assert DEFAULT_CATALOG.get("crypto-js").mock.endswith(":crypto_js")
        assert "axios" not in DEFAULT_CATALOG

    def test_helpers(self):
        assert generate_package_code("lodash") == "return _.map(input, lambda x: x * 2)"
        assert generate_package_code("unknown") == "return input"
        assert is_package_supported("dayjs")
        assert get_package_input_type("papaparse") == "string"
        assert get_package_output_type("validator") == "boolean"
        assert get_package_output_type("unknown") == "any"

    def test_spec_validation(self):
        with pytest.raises(ValueError):
            PackageSpec(name="x", binding="not valid", mock="m:a")
        with pytest.raises(ValueError):
            PackageSpec(name="x", binding="x", mock="no-attribute")

    def test_load_binding(self):
        assert load_binding("flowbench.sandbox.mocks:lodash") is _
        real = load_binding("flowbench.sandbox.mocks:mathjs", "statistics", prefer_real=True)
        assert real.__name__ == "statistics"
        missing = load_binding("flowbench.sandbox.mocks:mathjs", "no_such_module_xyz", prefer_real=True)
        assert missing is mathjs

    def test_copy_is_independent(self):
        catalog = DEFAULT_CATALOG.copy()
        catalog.register(PackageSpec(name="extra", binding="extra", mock="m:a"))
        assert "extra" in catalog
        assert "extra" not in DEFAULT_CATALOG
