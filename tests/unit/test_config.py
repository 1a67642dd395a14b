from marketplace.config import _clean_env, _split_env


def test_clean_env_strips_quotes():
    assert _clean_env('  "sk_test_1" ') == "sk_test_1"
    assert _clean_env("`whsec_1`") == "whsec_1"
    assert _clean_env(None) == ""


def test_split_env_handles_several_webhook_secrets():
    assert _split_env("whsec_a, 'whsec_b' ,,") == ["whsec_a", "whsec_b"]
    assert _split_env("") == []
