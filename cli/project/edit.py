import sys
from pathlib import Path

from cli.helpers import open_project, to_index

PROBE_TIMEOUT = 10.0


def cmd_enhance(args):
    coordinator = open_project(args)
    index = to_index(args.page)

    if not coordinator.enhancement.wait_for_probe(PROBE_TIMEOUT):
        print("⚠️  Text enhancement is not available")
        print("   Check the enhancer settings with 'scriptorium config show'.")
        return

    enhanced = coordinator.enhance_page(index, engine=args.engine, context=args.context)
    if enhanced is None:
        return

    if args.save:
        coordinator.save_transcription(index, enhanced, enhanced=True)
        print(f"✓ Saved enhanced transcription for page {args.page}")
    else:
        print(enhanced)


def cmd_transcribe(args):
    coordinator = open_project(args)
    index = to_index(args.page)

    if args.file:
        path = Path(args.file).expanduser()
        if not path.exists():
            print(f"❌ File not found: {path}")
            sys.exit(1)
        text = path.read_text(encoding='utf-8')
    elif args.text is not None:
        text = args.text
    else:
        text = coordinator.transcription_text(index)
        if not text:
            print(f"⚠️  Page {args.page} has no OCR text or transcription to start from")

    coordinator.save_transcription(index, text, enhanced=True if args.enhanced else None)
    print(f"✓ Saved transcription for page {args.page} ({len(text)} chars)")
