import sys
from pathlib import Path

from dotenv import load_dotenv

# Load env so colors match the running server
load_dotenv()

from server import build_dispatcher


def replay(lines, dispatcher=None):
    """Feeds each non-blank line to a dispatcher, in order."""
    dispatcher = dispatcher or build_dispatcher()
    for line in lines:
        if line.strip():
            dispatcher.handle(line)
    return dispatcher


def replay_file(path):
    with Path(path).open(encoding="utf-8") as fh:
        return replay(fh)


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("usage: python replay_updates.py UPDATES.jsonl > graph.svg", file=sys.stderr)
        sys.exit(2)
    dispatcher = replay_file(sys.argv[1])
    dispatcher.binding.fit_view(dispatcher.summits)
    print(dispatcher.binding.surface.to_svg())
    stats = dispatcher.snapshot()["stats"]
    print(
        f"applied={stats['messages_applied']} dropped={stats['messages_dropped']} "
        f"summits={stats['summits']} connections={stats['connections']}",
        file=sys.stderr,
    )
