"""
Splitbill - split a restaurant bill from a receipt photo

splitbill                          # Interactive wizard, resumes the last bill
splitbill receipt.jpg              # Load a photo and start the wizard
splitbill receipt.jpg --quick      # Quick mode - just show parsed items
splitbill --new                    # Forget the saved bill first
"""

import argparse
import logging
import os
import sys

from cli_interface import SplitbillCLI
from config import CURRENCY_LABEL, DEFAULT_MAX_WORKERS, STATE_FILE, WORKERS_MAX, WORKERS_MIN
from data_models import format_money
from log_config import set_log_level
from ocr_processor import ParallelOCRProcessor
from persistence import JsonFileStore, PersistenceAdapter
from receipt_parser import ReceiptParser

__version__ = "1.0.0"


def quick_process(image_path: str, workers: int = DEFAULT_MAX_WORKERS):
    """Quick processing mode - just show results"""
    print(f"🚀 Quick processing: {image_path}")

    processor = ParallelOCRProcessor(num_workers=workers)
    parser = ReceiptParser()

    text = processor.recognize(image_path)
    items = parser.parse(text)

    if text.strip() and items[0].price is not None:
        print(f"\n📋 Found {len(items)} items:")
        for i, item in enumerate(items, 1):
            total = item.price * item.qty
            print(f"  {i:2}. {item.label[:40]:40} {item.qty:2}x {item.price:7.2f} = {total:8.2f}")
        grand_total = sum(item.price * item.qty for item in items)
        print(f"\n💰 Total: {format_money(grand_total)} {CURRENCY_LABEL}")

        m = processor.metrics
        print(f"\n⚡ Processed in {m.processing_time:.2f}s using {m.workers_used} workers")
    else:
        print("\n⚠ No items found in receipt")
        print("Try:")
        print("  • Better image quality/lighting")
        print("  • Manual item entry in interactive mode")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Splitbill - split a bill from a receipt photo',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  splitbill                      # Interactive mode
  splitbill receipt.jpg          # Load photo then interactive
  splitbill receipt.jpg --quick  # Quick mode - show results only
  splitbill --workers 4          # Recognize in 4 parallel bands
        """
    )
    parser.add_argument('image', nargs='?', help='Receipt image to process')
    parser.add_argument(
        '--workers',
        type=int,
        default=DEFAULT_MAX_WORKERS,
        help=f'Number of parallel OCR workers (default: {DEFAULT_MAX_WORKERS})'
    )
    parser.add_argument('--quick', action='store_true', help='Process image and show results only')
    parser.add_argument('--state-file', default=STATE_FILE, help=f'Where the bill is saved (default: {STATE_FILE})')
    parser.add_argument('--new', action='store_true', help='Start a new bill, discarding the saved one')
    parser.add_argument('--debug', action='store_true', help='Log parser and OCR details to stderr')
    parser.add_argument('--version', action='version', version=f'Splitbill {__version__}')
    return parser


def main(argv=None):
    """Main entry point"""
    args = build_parser().parse_args(argv)

    if args.debug:
        set_log_level(logging.DEBUG)

    if args.workers < WORKERS_MIN or args.workers > WORKERS_MAX:
        print(f"⚠ Workers must be between {WORKERS_MIN} and {WORKERS_MAX}")
        args.workers = max(WORKERS_MIN, min(WORKERS_MAX, args.workers))

    if args.quick:
        if not args.image or not os.path.exists(args.image):
            print(f"❌ File not found: {args.image}")
            sys.exit(1)
        quick_process(args.image, args.workers)
        return

    persistence = PersistenceAdapter(JsonFileStore(args.state_file))
    cli = SplitbillCLI(persistence=persistence, processor=ParallelOCRProcessor(num_workers=args.workers))

    if args.new:
        cli.new_bill()
    elif cli.restore():
        print("↺ Продължаваш последната сметка")

    if args.image:
        if os.path.exists(args.image):
            if cli.wizard.at_first_step():
                cli.store.set_image(args.image)
        else:
            print(f"⚠ File not found: {args.image}")

    cli.run()


def run():
    try:
        main()
    except KeyboardInterrupt:
        print("\n\n👋 Goodbye!")
        sys.exit(0)


if __name__ == "__main__":
    run()
