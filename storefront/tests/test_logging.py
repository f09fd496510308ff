from storefront.shared.logging import correlation_scope, get_correlation_id, sanitize_message


def test_card_numbers_and_emails_are_masked() -> None:
    line = "capture card=4111 1111 1111 1234 cvv=123 for alice@example.com"

    cleaned = sanitize_message(line)

    assert "4111" not in cleaned
    assert "****-1234" in cleaned
    assert "123 " not in cleaned.split("cvv=")[1]
    assert "***@example.com" in cleaned


def test_ids_and_amounts_are_left_alone() -> None:
    line = "gift:send gift_id=3f2c9a1e-77b0-4d1f-9c4e-1a2b3c4d5e6f amount=29.99 USD"

    assert sanitize_message(line) == line


def test_correlation_scope_nests_under_an_existing_id() -> None:
    assert get_correlation_id() == "-"

    with correlation_scope("sweep") as outer:
        assert outer.startswith("sweep-")
        with correlation_scope("gift") as inner:
            assert inner == outer

    assert get_correlation_id() == "-"
