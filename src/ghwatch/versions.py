from __future__ import annotations

import re

# 版本中非数字段的排序（数字段视为 "#"），未知字符串最小。
_SPECIAL_FORMS: dict[str, int] = {
    "dev": 0,
    "alpha": 1,
    "a": 1,
    "beta": 2,
    "b": 2,
    "rc": 3,
    "c": 3,
    "#": 4,
    "pl": 5,
    "p": 5,
}
_UNKNOWN_FORM = -6
_RELEASE_WIDTH = 4

_SEPARATORS = re.compile(r"[-_+]")
_DIGIT_ALPHA_BOUNDARY = re.compile(r"(?<=\d)(?=[a-z])|(?<=[a-z])(?=\d)")


def canonicalize(version: str) -> list[str]:
    """
    将版本字符串规整为段列表，便于逐段比较。

    规则：
    - 去掉首尾空白、转小写、去掉 "v1.2" 形式的前缀 v
    - "-" / "_" / "+" 视为 "."；数字与字母交界处补 "."（"1.0rc1" -> 1.0.rc.1）
    - 开头的数字段补齐到 4 段，使 "1.2" 与 "1.2.0" 相等
    """
    v = (version or "").strip().lower()
    if v.startswith("v") and v[1:2].isdecimal():
        v = v[1:]
    v = _SEPARATORS.sub(".", v)
    v = _DIGIT_ALPHA_BOUNDARY.sub(".", v)
    parts = [p for p in v.split(".") if p]

    numeric = 0
    while numeric < len(parts) and parts[numeric].isdecimal():
        numeric += 1
    if 0 < numeric < _RELEASE_WIDTH:
        parts[numeric:numeric] = ["0"] * (_RELEASE_WIDTH - numeric)
    return parts


def _form_order(part: str) -> int:
    if part.isdecimal():
        return _SPECIAL_FORMS["#"]
    return _SPECIAL_FORMS.get(part, _UNKNOWN_FORM)


def _sign(x: int) -> int:
    return (x > 0) - (x < 0)


def _compare_part(a: str, b: str) -> int:
    if a.isdecimal() and b.isdecimal():
        return _sign(int(a) - int(b))
    oa, ob = _form_order(a), _form_order(b)
    if oa == ob == _UNKNOWN_FORM:
        # 两个都无法识别时退化为字典序，保证结果确定
        return _sign((a > b) - (a < b))
    return _sign(oa - ob)


def _compare_tail(part: str) -> int:
    """较长一方多出来的段：数字意味着更新，预发布标记意味着更旧。"""
    if part.isdecimal():
        return 1
    return _sign(_form_order(part) - _SPECIAL_FORMS["#"])


def compare_versions(v1: str, v2: str) -> int:
    """
    比较两个版本字符串，返回 -1 / 0 / 1。

    兼容非标准/畸形版本（如 "nightly"、"2024-01-02"、"r123"），不会抛异常。
    排序：未知 < dev < alpha < beta < rc < 正式版 < pl/p。
    """
    p1, p2 = canonicalize(v1), canonicalize(v2)
    for a, b in zip(p1, p2):
        c = _compare_part(a, b)
        if c:
            return c
    if len(p1) > len(p2):
        return _compare_tail(p1[len(p2)])
    if len(p2) > len(p1):
        return -_compare_tail(p2[len(p1)])
    return 0
