from leaguecord.command import Case, Prefix, parse


def test_parse_returns_arguments():
    assert parse("!purge 10", "purge", Case.INSENSITIVE, Prefix.YES) == ["10"]


def test_parse_no_arguments():
    assert parse("  !help  ", "help", Case.INSENSITIVE, Prefix.YES) == []


def test_insensitive_matches_any_case():
    assert parse("!HeLp a  b", "help", Case.INSENSITIVE, Prefix.YES) == ["a", "b"]


def test_sensitive_requires_exact_case():
    assert parse("!HELP", "help", Case.SENSITIVE, Prefix.YES) is None
    assert parse("!help x", "help", Case.SENSITIVE, Prefix.YES) == ["x"]


def test_missing_prefix_rejected():
    assert parse("help x", "help", Case.INSENSITIVE, Prefix.YES) is None


def test_no_prefix_mode():
    assert parse("help x", "help", Case.INSENSITIVE, Prefix.NO) == ["x"]
    assert parse("!help x", "help", Case.INSENSITIVE, Prefix.NO) is None


def test_longer_word_not_a_match():
    assert parse("!helpme", "help", Case.INSENSITIVE, Prefix.YES) is None


def test_empty_message():
    assert parse("   ", "help", Case.INSENSITIVE, Prefix.YES) is None


def test_defaults_are_insensitive_with_prefix():
    assert parse("!MODULES", "modules") == []