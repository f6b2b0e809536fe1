from deltakit.common.hashes import canonical_json, content_hash, json_size_bytes, sha256_text


def test_content_hash_is_independent_of_key_order():
    left = {"a": 1, "b": {"c": 2, "d": [1, 2, {"x": None, "y": True}]}}
    right = {"b": {"d": [1, 2, {"y": True, "x": None}], "c": 2}, "a": 1}

    assert content_hash(left) == content_hash(right)
    assert canonical_json(left) == canonical_json(right)


def test_content_hash_is_sha256_hex():
    digest = content_hash({"foo": "bar", "baz": 123})

    assert len(digest) == 64
    assert all(char in "0123456789abcdef" for char in digest)
    assert digest == sha256_text('{"baz":123,"foo":"bar"}')


def test_content_hash_preserves_array_order_and_types():
    assert content_hash({"items": [1, 2]}) != content_hash({"items": [2, 1]})
    assert content_hash({"a": 1}) != content_hash({"a": "1"})
    assert content_hash({"a": True}) != content_hash({"a": 1})
    assert content_hash({"foo": "bar"}) != content_hash({"foo": "baz"})


def test_canonical_json_is_compact_and_keeps_unicode():
    assert canonical_json({"b": [1, 2], "a": "é"}) == '{"a":"é","b":[1,2]}'
    assert json_size_bytes({"a": "é"}) == len('{"a":"é"}'.encode("utf-8"))
