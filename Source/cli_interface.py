"""
CLI Interface module for Splitbill
Terminal wizard: photo -> items -> people -> assignment -> summary
"""

from datetime import datetime
from typing import Callable, List, Optional

from bill_splitter import BillSplitter, format_amount, per_person_share
from bill_store import BillStore, BillStoreError
from config import CURRENCY_LABEL
from constants import STEP_TITLES, STEPS
from data_models import format_money
from ocr_processor import ParallelOCRProcessor
from persistence import PersistenceAdapter
from receipt_parser import ReceiptParser
from utils import (
    clean_text_for_display,
    create_progress_callback,
    parse_number_list,
    try_parse_float,
    try_parse_int,
    validate_image_path,
)
from wizard import WizardController

CLEAR_ANSWER = "-"


def _edited(answer: str) -> Optional[str]:
    """None keeps the old value, CLEAR_ANSWER empties it"""
    answer = answer.strip()
    if not answer:
        return None
    return "" if answer == CLEAR_ANSWER else answer


class SplitbillCLI:
    """Command-line front end. It only reads the store and issues store/wizard commands."""

    def __init__(self, store: Optional[BillStore] = None,
                 persistence: Optional[PersistenceAdapter] = None,
                 processor: Optional[ParallelOCRProcessor] = None,
                 parser: Optional[ReceiptParser] = None,
                 input_func: Optional[Callable[[str], str]] = None):
        self.persistence = persistence
        self.store = store or BillStore(persistence=persistence)
        self.wizard = WizardController(self.store)
        self.processor = processor or ParallelOCRProcessor()
        self.parser = parser or ReceiptParser()
        self.input = input_func or input
        self.needs_render = True
        self.running = False
        self.store.subscribe(self._on_change)

    def _on_change(self, store):
        self.needs_render = True

    def restore(self) -> bool:
        """Resume the last saved bill, if any"""
        if self.persistence is None:
            return False
        state = self.persistence.load()
        if state is None:
            return False
        self.store.hydrate(state)
        return True

    # ----- display -----

    def display_banner(self):
        print("\n" + "=" * 60)
        print("🍽️  SPLITBILL - Раздели сметката")
        print("=" * 60)

    def display_stepper(self):
        current = STEPS.index(self.store.state.current_step)
        parts = []
        for i, step in enumerate(STEPS):
            marker = "●" if i == current else ("✓" if i < current else "○")
            parts.append(f"{marker} {i + 1}.{STEP_TITLES[step]}")
        print("\n" + "  ".join(parts))
        print("-" * 60)

    def render(self):
        self.display_stepper()
        view = getattr(self, f"render_{self.store.state.current_step}")
        view()
        if self.wizard.error:
            print(f"\n⚠ {self.wizard.error}")
            self.wizard.error = None
        self.needs_render = False

    def render_upload(self):
        print("📸 СНИМКА НА БЕЛЕЖКАТА")
        if self.store.image_path:
            print(f"Снимка: {self.store.image_path}")
            print("\ns. Сканирай   c. Смени снимката   k. Въведи ръчно")
        else:
            print("Няма избрана снимка.")
            print("\np. Избери снимка   k. Въведи ръчно")

    def render_items(self):
        print("📋 АРТИКУЛИ")
        items = self.store.state.items
        if not items:
            print("(няма редове)")
        for i, item in enumerate(items, 1):
            label = clean_text_for_display(item.label, 30) or "(без име)"
            price = item.price if item.price != "" else "-"
            print(f"{i:2}. {label:30} {item.qty:2}x {price:>9}  = {format_money(item.total):>9}")
        print("-" * 60)
        print(f"{'ОБЩО:':45} {format_money(self.store.bill_total()):>9} {CURRENCY_LABEL}")
        print("\na. Добави   e N. Редактирай   d N. Дублирай   r N. Премахни")

    def render_people(self):
        print("👥 ХОРА")
        people = self.store.state.people
        if not people:
            print("(никой още)")
        for i, person in enumerate(people, 1):
            print(f"{i:2}. {person.name}")
        print("\na. Добави   r N. Премахни")

    def _assignable_items(self):
        return [item for item in self.store.state.items if item.total > 0]

    def render_assign(self):
        print("🔍 КОЙ КАКВО ДЕЛИ")
        people = self.store.state.people
        for i, item in enumerate(self._assignable_items(), 1):
            assignees = self.store.assignees(item.id)
            names = [p.name for p in people if p.id in assignees]
            print(f"\n{i:2}. {clean_text_for_display(item.label, 30) or '(без име)'}"
                  f" - {format_money(item.total)} {CURRENCY_LABEL}")
            print(f"    Дели: {', '.join(names) if names else 'никой'}")
            share = per_person_share(item, assignees)
            if share is not None:
                print(f"    По {format_money(share)} {CURRENCY_LABEL} на човек")
        print("\nХора: " + ", ".join(f"{i}.{p.name}" for i, p in enumerate(people, 1)))
        print("t N M. Превключи човек M   s N M,M. Задай   all N. Всички   none N. Никой")

    def render_summary(self):
        print("💰 СМЕТКА")
        splitter = BillSplitter.from_state(self.store.state)
        splitter.calculate_balances()
        for person, amount in splitter.ordered_balances():
            print(f"{person.name:20} : {format_amount(amount)}")
        print("-" * 60)
        print(f"{'Общо:':20} : {format_money(splitter.bill_total())} {CURRENCY_LABEL}")
        unassigned = splitter.unassigned_total()
        if unassigned > 0:
            print(f"{'Неразпределени:':20} : {format_money(unassigned)} {CURRENCY_LABEL}")
        print("\nx. Копирай като текст   new. Нова сметка")

    # ----- helpers -----

    def _pick(self, entries: List, number: Optional[str]):
        idx = try_parse_int(number or "")
        if idx is None or not 1 <= idx <= len(entries):
            print("Невалиден номер")
            return None
        return entries[idx - 1]

    # ----- upload actions -----

    def choose_image(self):
        path = self.input("Път до снимката: ").strip()
        if validate_image_path(path):
            self.store.set_image(path)

    def scan(self):
        if not self.store.image_path:
            print("⚠ Първо избери снимка")
            return
        progress = create_progress_callback(3, "OCR")
        calls = [0]

        def on_status(message: str):
            calls[0] = min(calls[0] + 1, 2)
            progress(calls[0], message)

        text = self.processor.recognize(self.store.image_path, status_callback=on_status)
        progress(3, "готово")
        self.store.load_parsed(self.parser.parse(text))
        self.wizard.next()

    def skip_scan(self):
        self.store.skip_scan()
        self.wizard.next()

    # ----- item actions -----

    def edit_item(self, number: Optional[str]):
        item = self._pick(self.store.state.items, number)
        if item is None:
            return
        print(f"Enter запазва стойността, {CLEAR_ANSWER} я изтрива")
        label = _edited(self.input(f"Артикул [{item.label}]: "))
        price = _edited(self.input(f"Цена [{item.price}]: "))
        qty = self.input(f"Брой [{item.qty}]: ").strip()

        if price and try_parse_float(price) is None:
            print("⚠ Цената не е число, остава за корекция")
        self.store.update_item(
            item.id,
            label=label,
            price=price.replace(',', '.') if price is not None else None,
            qty=try_parse_int(qty) if qty else None,
        )

    def add_item(self):
        self.store.add_item()
        self.edit_item(str(len(self.store.state.items)))

    # ----- people actions -----

    def add_person(self):
        name = self.input("Име: ")
        try:
            self.store.add_person(name)
        except BillStoreError:
            print("⚠ Името не може да е празно")

    # ----- assign actions -----

    def toggle(self, item_no: Optional[str], person_no: Optional[str]):
        item = self._pick(self._assignable_items(), item_no)
        person = self._pick(self.store.state.people, person_no) if item else None
        if item and person:
            self.store.toggle(item.id, person.id)

    def set_assignment(self, item_no: Optional[str], people_spec: str):
        item = self._pick(self._assignable_items(), item_no)
        if item is None:
            return
        people = self.store.state.people
        ids = [people[n - 1].id for n in parse_number_list(people_spec) if 1 <= n <= len(people)]
        self.store.set_assignment(item.id, ids)

    # ----- summary actions -----

    def export_summary(self) -> str:
        text = BillSplitter.from_state(self.store.state).summary_text()
        print("\n" + text)
        answer = self.input("\nЗапиши във файл? (y/N): ").strip().lower()
        if answer == 'y':
            filename = f"splitbill_{datetime.now().strftime('%Y%m%d_%H%M%S')}.txt"
            try:
                with open(filename, 'w', encoding='utf-8') as f:
                    f.write(text + "\n")
                print(f"✅ Записано в {filename}")
            except OSError as e:
                print(f"Копирането не успя: {e}")
        return text

    def new_bill(self):
        self.wizard.new_bill()
        print("✓ Нова сметка")

    # ----- dispatch -----

    def handle(self, command: str) -> None:
        parts = command.strip().split(maxsplit=2)
        if not parts:
            return
        action, args = parts[0].lower(), parts[1:]
        arg1 = args[0] if args else None
        arg2 = args[1] if len(args) > 1 else ""
        step = self.store.state.current_step

        if action == 'q':
            self.running = False
        elif action == 'n':
            self.wizard.next()
        elif action == 'b':
            self.wizard.back()
        elif action == 'g':
            number = try_parse_int(arg1 or "")
            if number is not None and 1 <= number <= len(STEPS):
                self.wizard.select(STEPS[number - 1])
        elif action == 'new':
            self.new_bill()
        elif step == 'upload':
            self._handle_upload(action)
        elif step == 'items':
            self._handle_items(action, arg1)
        elif step == 'people':
            self._handle_people(action, arg1)
        elif step == 'assign':
            self._handle_assign(action, arg1, arg2)
        elif step == 'summary' and action == 'x':
            self.export_summary()
        else:
            print("Непозната команда")
        # refused moves must still show their message
        if self.wizard.error:
            self.needs_render = True

    def _handle_upload(self, action):
        if action == 'p':
            self.choose_image()
        elif action == 's':
            self.scan()
        elif action == 'c':
            self.store.clear_image()
        elif action == 'k':
            self.skip_scan()
        else:
            print("Непозната команда")

    def _handle_items(self, action, arg):
        if action == 'a':
            self.add_item()
        elif action == 'e':
            self.edit_item(arg)
        elif action == 'd':
            item = self._pick(self.store.state.items, arg)
            if item:
                self.store.duplicate_item(item.id)
        elif action == 'r':
            item = self._pick(self.store.state.items, arg)
            if item:
                self.store.remove_item(item.id)
        else:
            print("Непозната команда")

    def _handle_people(self, action, arg):
        if action == 'a':
            self.add_person()
        elif action == 'r':
            person = self._pick(self.store.state.people, arg)
            if person:
                self.store.remove_person(person.id)
        else:
            print("Непозната команда")

    def _handle_assign(self, action, arg1, arg2):
        if action == 't':
            self.toggle(arg1, arg2)
        elif action == 's':
            self.set_assignment(arg1, arg2)
        elif action in ('all', 'none'):
            item = self._pick(self._assignable_items(), arg1)
            if item:
                if action == 'all':
                    self.store.assign_all(item.id)
                else:
                    self.store.assign_none(item.id)
        else:
            print("Непозната команда")

    def run(self):
        """Run the CLI application"""
        self.display_banner()
        self.running = True
        while self.running:
            if self.needs_render:
                self.render()
            print("\nn. Напред  b. Назад  g N. Стъпка  new. Нова сметка  q. Изход")
            try:
                command = self.input("\n> ")
            except EOFError:
                break
            self.handle(command)
        print("\n👋 Довиждане!")
