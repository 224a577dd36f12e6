import pytest

from cli_interface import SplitbillCLI
from config import CURRENCY_LABEL
from constants import ITEMS_GATE_MESSAGE


def scripted(*answers):
    remaining = list(answers)

    def fake_input(prompt=""):
        if not remaining:
            raise EOFError
        return remaining.pop(0)

    return fake_input


class FakeProcessor:
    def __init__(self, text):
        self.text = text
        self.paths = []

    def recognize(self, image, status_callback=None):
        self.paths.append(image)
        if status_callback:
            status_callback("working")
        return self.text


def test_manual_bill_walkthrough(capsys) -> None:
    cli = SplitbillCLI(input_func=scripted(
        "k",
        "a", "Pizza", "12,50", "",
        "a", "Cola", "1,20", "3",
        "n",
        "a", "Ana",
        "a", "Bob",
        "n",
        "s 1 1",
        "all 2",
        "n",
        "x", "n",
        "q",
    ), processor=FakeProcessor(""))

    cli.run()

    assert cli.store.state.current_step == "summary"
    out = capsys.readouterr().out
    assert f"Ana: 14.30 {CURRENCY_LABEL}\nBob: 1.80 {CURRENCY_LABEL}" in out


def test_refused_step_shows_message(capsys) -> None:
    cli = SplitbillCLI(input_func=scripted("k", "n"), processor=FakeProcessor(""))

    cli.run()

    assert cli.store.state.current_step == "items"
    assert ITEMS_GATE_MESSAGE in capsys.readouterr().out


def test_scan_loads_items_and_moves_on() -> None:
    processor = FakeProcessor("Pizza 12,50\nCola 3x 1,20\nОБЩА СУМА 16,10")
    cli = SplitbillCLI(processor=processor, input_func=scripted())
    cli.store.set_image("receipt.jpg")

    cli.handle("s")

    assert processor.paths == ["receipt.jpg"]
    assert cli.store.state.current_step == "items"
    assert [(i.label, i.price, i.qty) for i in cli.store.state.items] == [
        ("Pizza", "12.50", 1),
        ("Cola", "1.20", 3),
    ]


def test_failed_recognition_still_reaches_items() -> None:
    cli = SplitbillCLI(processor=FakeProcessor(""), input_func=scripted())
    cli.store.set_image("receipt.jpg")

    cli.handle("s")

    assert cli.store.state.current_step == "items"
    assert [(i.label, i.price) for i in cli.store.state.items] == [("", "")]


def test_scan_without_image_does_nothing(capsys) -> None:
    cli = SplitbillCLI(processor=FakeProcessor("Pizza 12,50"), input_func=scripted())

    cli.handle("s")

    assert cli.store.state.current_step == "upload"
    assert cli.store.state.items == []


@pytest.mark.parametrize("command", ["r 9", "d x", "e"])
def test_bad_item_numbers_are_reported(command, capsys) -> None:
    cli = SplitbillCLI(processor=FakeProcessor(""), input_func=scripted())
    cli.handle("k")

    cli.handle(command)

    assert "Невалиден номер" in capsys.readouterr().out


def test_edit_can_keep_or_clear_fields() -> None:
    cli = SplitbillCLI(processor=FakeProcessor(""), input_func=scripted(
        "Pizza", "12,50", "2",
        "-", "", "",
        "", "-", "",
    ))
    cli.handle("k")
    cli.handle("a")
    item = cli.store.state.items[0]

    assert (item.label, item.price, item.qty) == ("Pizza", "12.50", 2)

    cli.handle("e 1")

    assert (item.label, item.price, item.qty) == ("", "12.50", 2)

    cli.handle("e 1")

    assert (item.label, item.price, item.qty) == ("", "", 2)
