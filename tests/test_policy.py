from feedbloater.policy import should_write


def test_always_writes_even_when_unchanged():
    assert should_write("always", False) is True
    assert should_write("always", True) is True


def test_changed_follows_source_flag():
    assert should_write("changed", False) is False
    assert should_write("changed", True) is True
