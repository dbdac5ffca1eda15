import logging

from device_matching.schemas.policy import ActionType
from device_matching.schemas.query import ConditionType, FilterBlock, FilterGroup, FilterType, LogicalOperator
from device_matching.services import labels
from device_matching.services.labels import (
    chip_text,
    format_label,
    generate_query_summary,
    render_chips,
    value_text,
)


def _block(**kwargs) -> FilterBlock:
    return FilterBlock(**kwargs)


def test_node_label_with_preset_label_wins():
    block = _block(kind=FilterType.NODE_LABEL, key="gpu", condition_type=ConditionType.EQUAL, value="true", label="custom")
    assert format_label(block, ActionType.POOL_ENTRY) == "custom"


def test_device_contains_uses_display_name_or_field():
    block = _block(field="custom_attr", condition_type=ConditionType.CONTAINS, value="x")
    assert format_label(block, ActionType.POOL_ENTRY) == "custom_attr 包含 x"
    assert format_label(block, ActionType.POOL_ENTRY, {"custom_attr": "自定义"}) == "自定义 包含 x"


def test_cluster_rules_depend_on_action():
    empty = _block(field="cluster", condition_type=ConditionType.IS_EMPTY)
    equal = _block(field="cluster", condition_type=ConditionType.EQUAL, value="prod-5")
    assert format_label(empty, ActionType.POOL_ENTRY) == "未入池设备"
    assert format_label(equal, ActionType.POOL_EXIT) == "已入池设备"
    assert format_label(empty, ActionType.POOL_EXIT) == "cluster 为空"
    assert format_label(equal, ActionType.POOL_ENTRY) == "cluster 等于 prod-5"


def test_location_equal_uses_raw_field_name():
    block = _block(field="idc", condition_type=ConditionType.EQUAL, value="sh")
    assert format_label(block, None, {"idc": "机房IDC"}) == "idc = sh"


def test_device_label_ignores_preset_label():
    block = _block(field="cpuArch", condition_type=ConditionType.EQUAL, value="arm", label="stale")
    assert format_label(block) == "cpuArch 等于 arm"
    assert chip_text(block) == "stale"


def test_absent_value_has_no_trailing_space():
    block = _block(field="ip", condition_type=ConditionType.IS_NOT_EMPTY)
    assert format_label(block) == "ip 不为空"


def test_in_operator_renders_wire_value():
    block = _block(field="role", condition_type=ConditionType.IN, value=["a", "b"])
    assert format_label(block) == "role in a,b"


def test_taint_and_node_label_prefixes():
    taint = _block(kind=FilterType.TAINT, key="dedicated", condition_type=ConditionType.EXISTS)
    node = _block(kind=FilterType.NODE_LABEL, key="gpu", condition_type=ConditionType.EQUAL, value=True)
    assert format_label(taint) == "污点 dedicated exists"
    assert format_label(node) == "标签 gpu equal true"


def test_unknown_kind_uses_placeholder():
    block = _block(kind=FilterType.NODE_INFO, key="kernel", condition_type=ConditionType.EQUAL, value="5.10")
    assert format_label(block) == "nodeInfo条件"


def test_format_label_never_raises(monkeypatch, caplog):
    def _boom(*_args, **_kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(labels, "_device_label", _boom)
    caplog.set_level(logging.ERROR)

    block = _block(field="cpuArch", condition_type=ConditionType.EQUAL, value="arm")
    assert format_label(block) == "device条件"
    assert any("format_label failed" in rec.message for rec in caplog.records)


def test_value_text():
    assert value_text(None) == ""
    assert value_text(False) == "false"
    assert value_text(["a", "b"]) == "a,b"
    assert value_text(3) == "3"


def test_render_chips_shape():
    groups = [
        FilterGroup(blocks=[_block(field="cluster", condition_type=ConditionType.IS_EMPTY)]),
        FilterGroup(blocks=[_block(field="idc", condition_type=ConditionType.EQUAL, value="sh", label="idc = sh")]),
    ]
    assert render_chips(groups, "pool_entry") == [["未入池设备"], ["idc = sh"]]


def test_summary_uses_left_fold_combinators():
    groups = [
        FilterGroup(
            blocks=[
                _block(field="idc", condition_type=ConditionType.EQUAL, value="sh", combinator=LogicalOperator.OR),
                _block(field="cluster", condition_type=ConditionType.IS_EMPTY),
            ],
            combinator=LogicalOperator.OR,
        ),
        FilterGroup(blocks=[_block(kind=FilterType.NODE_LABEL, key="gpu", value="true")]),
    ]
    assert generate_query_summary(groups) == "(idc=sh OR cluster为空) OR (标签[gpu]=true)"


def test_summary_empty_and_truncated():
    assert generate_query_summary([]) == "无查询条件"
    assert generate_query_summary([FilterGroup(blocks=[])]) == "无查询条件"
    long_group = FilterGroup(blocks=[_block(field="hostname", value="x" * 200)])
    summary = generate_query_summary([long_group], max_length=50)
    assert len(summary) == 50
    assert summary.endswith("...")


def test_summary_list_values_are_abbreviated():
    block = _block(field="role", condition_type=ConditionType.IN, value=["a", "b", "c"])
    assert generate_query_summary([FilterGroup(blocks=[block])]) == "(role∈[a, b...])"
