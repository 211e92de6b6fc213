"""Tests for the base quantity check engine."""

import asyncio
import logging
import math

import pytest

from basequantity_checker.engine import BaseQuantityChecker, classify_value, group_name
from basequantity_checker.errors import CatalogError, CheckTimeoutError, HostError
from basequantity_checker.hosts import InMemoryModelHost, ModelElement
from basequantity_checker.models import (
    ABSENT,
    Catalog,
    CheckOutcome,
    QuantitySpec,
    QuantityStatus,
    ResolvedQuantity,
)

NET_VOLUME = "Qto_WallBaseQuantities.NetVolume"
VOLUME = QuantitySpec(keys=[NET_VOLUME, "Volume"], display_name="Volume")
AREA = QuantitySpec(keys=["Qto_WallBaseQuantities.NetSideArea"], display_name="Side Area")


def _wall(id: str, **quantities) -> ModelElement:
    return ModelElement(id=id, properties={"ifcType": "IfcWall", **quantities})


async def _run(host, category, specs, **kwargs):
    return await BaseQuantityChecker(host, **kwargs).run_check(category, specs)


async def _run_detailed(host, category, specs, **kwargs):
    return await BaseQuantityChecker(host, **kwargs).run_check_detailed(category, specs)


class TestClassification:
    def test_zero(self):
        assert classify_value(ResolvedQuantity(key="k", value=0.0)) == QuantityStatus.ZERO

    def test_negative(self):
        assert classify_value(ResolvedQuantity(key="k", value=-5.0)) == QuantityStatus.NEGATIVE

    def test_absent(self):
        assert classify_value(ABSENT) == QuantityStatus.UNDEFINED

    def test_positive(self):
        assert classify_value(ResolvedQuantity(key="k", value=3.2)) == QuantityStatus.OK

    def test_nan_is_undefined(self):
        assert classify_value(ResolvedQuantity(key="k", value=math.nan)) == QuantityStatus.UNDEFINED

    def test_negative_infinity(self):
        assert classify_value(ResolvedQuantity(key="k", value=-math.inf)) == QuantityStatus.NEGATIVE

    def test_non_numeric_present_value_is_undefined(self):
        assert classify_value(ResolvedQuantity(key="k", value="abc")) == QuantityStatus.UNDEFINED


class TestGroupName:
    def test_literal_construction(self):
        assert group_name("Wall", QuantityStatus.NEGATIVE, "Volume") == "Wall with negative Volume"

    def test_display_name_used_verbatim(self):
        name = group_name("Slab", QuantityStatus.UNDEFINED, "Net Area (m²)")
        assert name == "Slab with undefined Net Area (m²)"


class TestDiscovery:
    @pytest.mark.asyncio()
    async def test_no_elements(self):
        """No match → noElements, no visibility call, no selection sets."""
        host = InMemoryModelHost([
            ModelElement(id="s1", properties={"ifcType": "IfcSlab", NET_VOLUME: 0}),
        ])
        assert await _run(host, "Wall", [VOLUME]) == CheckOutcome.NO_ELEMENTS
        assert host.count("show_elements_only") == 0
        assert host.count("create_selection_set") == 0
        assert host.visible is None

    @pytest.mark.asyncio()
    async def test_empty_model(self):
        host = InMemoryModelHost([])
        assert await _run(host, "Wall", [VOLUME]) == CheckOutcome.NO_ELEMENTS
        assert host.calls == [("get_all_elements", "geometry")]

    @pytest.mark.asyncio()
    async def test_case_insensitive_substring(self):
        host = InMemoryModelHost([
            ModelElement(id="a", properties={"ifcType": "IFCWALLSTANDARDCASE", NET_VOLUME: 1}),
            ModelElement(id="b", properties={"ifcType": "IfcCurtainWall", NET_VOLUME: 1}),
            ModelElement(id="c", properties={"ifcType": "IfcSlab", NET_VOLUME: 1}),
        ])
        result = await _run_detailed(host, "wall", [VOLUME])
        assert result.outcome == CheckOutcome.ALL_OK
        assert result.matched == 2
        assert host.visible == ["a", "b"]

    @pytest.mark.asyncio()
    async def test_matches_type_object(self):
        """ifcTypeObject alone is enough to match."""
        host = InMemoryModelHost([
            ModelElement(id="p", properties={
                "ifcType": "IfcBuildingElementProxy",
                "ifcTypeObject": "Drywall Partition",
                NET_VOLUME: -1,
            }),
        ])
        result = await _run_detailed(host, "Wall", [VOLUME])
        assert result.groups == {"Wall with negative Volume": ["p"]}

    @pytest.mark.asyncio()
    async def test_missing_type_properties(self):
        host = InMemoryModelHost([ModelElement(id="x", properties={NET_VOLUME: 0})])
        assert await _run(host, "Wall", [VOLUME]) == CheckOutcome.NO_ELEMENTS

    @pytest.mark.asyncio()
    async def test_scope_passed_to_host(self):
        host = InMemoryModelHost([_wall("w1", **{NET_VOLUME: 1})])
        await _run(host, "Wall", [VOLUME], scope="all")
        assert host.calls[0] == ("get_all_elements", "all")


class TestKeyFallback:
    @pytest.mark.asyncio()
    async def test_first_key_short_circuits(self):
        """A defined first key means later keys are never queried."""
        host = InMemoryModelHost([_wall("w1", **{NET_VOLUME: 4.0, "Volume": 0})])
        assert await _run(host, "Wall", [VOLUME]) == CheckOutcome.ALL_OK
        assert host.count("get_property_value", "w1", NET_VOLUME) == 1
        assert host.count("get_property_value", "w1", "Volume") == 0

    @pytest.mark.asyncio()
    async def test_falls_back_to_second_key(self):
        host = InMemoryModelHost([_wall("w1", Volume=0)])
        result = await _run_detailed(host, "Wall", [VOLUME])
        assert result.groups == {"Wall with zero Volume": ["w1"]}
        assert host.count("get_property_value", "w1", NET_VOLUME) == 1
        assert host.count("get_property_value", "w1", "Volume") == 1

    @pytest.mark.asyncio()
    async def test_zero_on_first_key_stops_fallback(self):
        """0 is a defined value: reported as zero, fallback stops."""
        host = InMemoryModelHost([_wall("w1", **{NET_VOLUME: 0, "Volume": 7})])
        result = await _run_detailed(host, "Wall", [VOLUME])
        assert result.groups == {"Wall with zero Volume": ["w1"]}
        assert host.count("get_property_value", "w1", "Volume") == 0

    @pytest.mark.asyncio()
    async def test_non_numeric_value_falls_through(self):
        """Unparsable doubles are absent at the host, so the next key is tried."""
        host = InMemoryModelHost([_wall("w1", **{NET_VOLUME: "n/a", "Volume": 2.0})])
        assert await _run(host, "Wall", [VOLUME]) == CheckOutcome.ALL_OK
        assert host.count("get_property_value", "w1", "Volume") == 1

    @pytest.mark.asyncio()
    async def test_no_key_resolves(self):
        host = InMemoryModelHost([_wall("w1")])
        result = await _run_detailed(host, "Wall", [VOLUME])
        assert result.groups == {"Wall with undefined Volume": ["w1"]}

    @pytest.mark.asyncio()
    async def test_resolve_quantity_reports_key(self):
        host = InMemoryModelHost([_wall("w1", Volume=3.5)])
        checker = BaseQuantityChecker(host)
        resolved = await checker.resolve_quantity(host.elements[0], VOLUME)
        assert resolved == ResolvedQuantity(key="Volume", value=3.5)

    @pytest.mark.asyncio()
    async def test_resolving_key_logged_per_quantity(self, caplog):
        host = InMemoryModelHost([_wall("w1", Volume=0), _wall("w2")])
        with caplog.at_level(logging.DEBUG, logger="basequantity_checker.engine.checker"):
            await _run(host, "Wall", [VOLUME])
        assert "w1 Volume: zero via Volume = 0.0" in caplog.text
        assert "w2 Volume: undefined via None = None" in caplog.text


class TestOutcomes:
    @pytest.mark.asyncio()
    async def test_all_ok(self):
        host = InMemoryModelHost([
            _wall("w1", **{NET_VOLUME: 1.0}),
            _wall("w2", Volume=2.5),
        ])
        assert await _run(host, "Wall", [VOLUME]) == CheckOutcome.ALL_OK
        assert host.count("create_selection_set") == 0
        assert host.selection_sets == []
        assert host.visible == ["w1", "w2"]

    @pytest.mark.asyncio()
    async def test_empty_specs_is_all_ok(self):
        host = InMemoryModelHost([_wall("w1")])
        assert await _run(host, "Wall", []) == CheckOutcome.ALL_OK
        assert host.count("show_elements_only") == 1
        assert host.count("create_selection_set") == 0

    @pytest.mark.asyncio()
    async def test_two_specs_on_one_element(self):
        """One element lands in every group its quantities fail."""
        host = InMemoryModelHost([
            _wall("w1", **{NET_VOLUME: -5, "Qto_WallBaseQuantities.NetSideArea": 0}),
            _wall("w2", **{NET_VOLUME: 3.2}),
        ])
        result = await _run_detailed(host, "Wall", [VOLUME, AREA])
        assert result.outcome == CheckOutcome.ISSUES_FOUND
        assert result.groups == {
            "Wall with negative Volume": ["w1"],
            "Wall with zero Side Area": ["w1"],
            "Wall with undefined Side Area": ["w2"],
        }

    @pytest.mark.asyncio()
    async def test_group_order_follows_first_issue(self):
        host = InMemoryModelHost([
            _wall("w1", **{NET_VOLUME: 0}),
            _wall("w2"),
            _wall("w3", **{NET_VOLUME: 0}),
        ])
        result = await _run_detailed(host, "Wall", [VOLUME])
        assert list(result.groups) == ["Wall with zero Volume", "Wall with undefined Volume"]
        assert result.groups["Wall with zero Volume"] == ["w1", "w3"]
        names = [s.name for s in host.selection_sets]
        assert names == list(result.groups)

    @pytest.mark.asyncio()
    async def test_category_used_verbatim_in_group_names(self):
        host = InMemoryModelHost([_wall("w1", **{NET_VOLUME: 0})])
        result = await _run_detailed(host, "wALL", [VOLUME])
        assert list(result.groups) == ["wALL with zero Volume"]


class TestEndToEnd:
    @pytest.mark.asyncio()
    async def test_wall_scenario(self):
        catalog = Catalog.from_mapping({
            "Wall": [{"keys": [NET_VOLUME, "Volume"], "displayName": "Volume"}],
        })
        host = InMemoryModelHost([
            _wall("e1", **{NET_VOLUME: 0}),
            _wall("e2", **{NET_VOLUME: 12.5}),
            _wall("e3", **{NET_VOLUME: -3}),
        ])
        outcome = await _run(host, "Wall", catalog.specs_for("Wall"))

        assert outcome == CheckOutcome.ISSUES_FOUND
        assert [(s.name, s.ids) for s in host.selection_sets] == [
            ("Wall with zero Volume", ["e1"]),
            ("Wall with negative Volume", ["e3"]),
        ]

        methods = [c[0] for c in host.calls]
        show = methods.index("show_elements_only")
        assert host.calls[show] == ("show_elements_only", ["e1", "e2", "e3"])
        assert show < methods.index("create_selection_set")
        assert show < methods.index("id_list_to_str")
        assert host.count("add_to_selection_set_geometry", "Wall with zero Volume", "e1") == 1

    @pytest.mark.asyncio()
    async def test_ids_joined_with_semicolon(self):
        host = InMemoryModelHost([_wall("a"), _wall("b")])
        await _run(host, "Wall", [VOLUME])
        assert host.count("add_to_selection_set_geometry", "Wall with undefined Volume", "a;b") == 1

    @pytest.mark.asyncio()
    async def test_not_idempotent(self):
        """Running twice without resetting the host duplicates selection sets."""
        host = InMemoryModelHost([_wall("e1", **{NET_VOLUME: 0})])
        checker = BaseQuantityChecker(host)

        assert await checker.run_check("Wall", [VOLUME]) == CheckOutcome.ISSUES_FOUND
        assert await checker.run_check("Wall", [VOLUME]) == CheckOutcome.ISSUES_FOUND
        names = [s.name for s in host.selection_sets]
        assert names == ["Wall with zero Volume", "Wall with zero Volume"]

    @pytest.mark.asyncio()
    async def test_check_catalog_runs_each_category(self):
        catalog = Catalog.from_mapping({
            "Wall": [{"keys": [NET_VOLUME], "displayName": "Volume"}],
            "Column": [{"keys": ["Qto_ColumnBaseQuantities.Length"], "displayName": "Length"}],
        })
        host = InMemoryModelHost([_wall("w1", **{NET_VOLUME: 1})])
        results = await BaseQuantityChecker(host).check_catalog(catalog)
        assert [(r.category, r.outcome) for r in results] == [
            ("Wall", CheckOutcome.ALL_OK),
            ("Column", CheckOutcome.NO_ELEMENTS),
        ]

    @pytest.mark.asyncio()
    async def test_check_catalog_raises_on_malformed_category(self):
        """A malformed category fails when it is reached, not before."""
        catalog = Catalog.from_mapping({
            "Wall": [{"keys": [NET_VOLUME], "displayName": "Volume"}],
            "Door": [{"displayName": "Area"}],
        })
        host = InMemoryModelHost([_wall("w1", **{NET_VOLUME: 1})])
        checker = BaseQuantityChecker(host)
        results = await checker.check_catalog(catalog, ["Wall"])
        assert [r.outcome for r in results] == [CheckOutcome.ALL_OK]
        with pytest.raises(CatalogError, match="Door"):
            await checker.check_catalog(catalog)


class FailingHost(InMemoryModelHost):
    """Fails selection-set creation after ``allowed`` successful creations."""

    def __init__(self, elements, allowed: int):
        super().__init__(elements)
        self.allowed = allowed

    async def create_selection_set(self, name):
        if self.allowed == 0:
            raise HostError("selection sets unavailable")
        self.allowed -= 1
        return await super().create_selection_set(name)


class SlowHost(InMemoryModelHost):
    async def get_all_elements(self, scope):
        await asyncio.sleep(0.5)
        return await super().get_all_elements(scope)


class TestErrors:
    @pytest.mark.asyncio()
    async def test_host_failure_propagates_without_rollback(self):
        host = FailingHost([_wall("w1", **{NET_VOLUME: 0}), _wall("w2")], allowed=1)
        with pytest.raises(HostError):
            await _run(host, "Wall", [VOLUME])
        assert [s.name for s in host.selection_sets] == ["Wall with zero Volume"]
        assert host.visible == ["w1", "w2"]

    @pytest.mark.asyncio()
    async def test_unknown_scope_propagates(self):
        host = InMemoryModelHost([_wall("w1")])
        with pytest.raises(HostError, match="Unknown element scope"):
            await _run(host, "Wall", [VOLUME], scope="spaces")

    @pytest.mark.asyncio()
    async def test_call_timeout(self):
        host = SlowHost([_wall("w1")])
        with pytest.raises(CheckTimeoutError):
            await _run(host, "Wall", [VOLUME], call_timeout=0.01)

    @pytest.mark.asyncio()
    async def test_no_timeout_by_default(self):
        host = SlowHost([_wall("w1", **{NET_VOLUME: 1})])
        assert await _run(host, "Wall", [VOLUME]) == CheckOutcome.ALL_OK


class TestSerialization:
    @pytest.mark.asyncio()
    async def test_concurrent_checks_do_not_interleave(self):
        """A second check on the same checker waits for the first to finish."""
        host = SlowHost([_wall("w1", **{NET_VOLUME: 0})])
        checker = BaseQuantityChecker(host)

        outcomes = await asyncio.gather(
            checker.run_check("Wall", [VOLUME]),
            checker.run_check("Wall", [VOLUME]),
        )
        assert outcomes == [CheckOutcome.ISSUES_FOUND] * 2
        methods = [c[0] for c in host.calls]
        first_add = methods.index("add_to_selection_set_geometry")
        assert methods.index("get_all_elements", 1) > first_add
