import pytest

from inventory_watch import config, emailer


def test_build_message(monkeypatch):
    monkeypatch.setattr(config, "EMAIL_FROM", "watch@example.com")
    monkeypatch.setattr(config, "EMAIL_TO", ["me@example.com", "you@example.com"])

    msg = emailer.build_message("Preferred Model Found", "A: 2 found, B <16\">: 1 found")

    assert msg["Subject"] == f"{config.EMAIL_SUBJECT_PREFIX} Preferred Model Found"
    assert msg["To"] == "me@example.com, you@example.com"
    plain = msg.get_body(preferencelist=("plain",)).get_content()
    html = msg.get_body(preferencelist=("html",)).get_content()
    assert "A: 2 found, B <16\">: 1 found" in plain
    assert "<p>A: 2 found, B &lt;16&quot;&gt;: 1 found</p>" in html


def test_disabled_email_sends_nothing(monkeypatch):
    monkeypatch.setattr(config, "EMAIL_ENABLED", False)
    monkeypatch.setattr(emailer, "_send", lambda msg: pytest.fail("should not send"))
    emailer.send_notification("t", "b")


def test_enabled_email_is_sent(monkeypatch):
    sent = []
    monkeypatch.setattr(config, "EMAIL_ENABLED", True)
    monkeypatch.setattr(config, "EMAIL_TO", ["me@example.com"])
    monkeypatch.setattr(emailer, "_send", sent.append)

    emailer.send_notification("Apple Store Inventory Found", "A: 1 found")

    assert len(sent) == 1
    assert sent[0]["Subject"].endswith("Apple Store Inventory Found")


def test_product_names_with_commas_stay_whole(monkeypatch):
    monkeypatch.setattr(config, "EMAIL_TO", ["me@example.com"])

    msg = emailer.build_message("Apple Store Inventory Found", "Mac mini (M2, 2023): 1 found")

    plain = msg.get_body(preferencelist=("plain",)).get_content()
    html = msg.get_body(preferencelist=("html",)).get_content()
    assert "Mac mini (M2, 2023): 1 found" in plain
    assert "<p>Mac mini (M2, 2023): 1 found</p>" in html
