#!/usr/bin/env python3
import argparse
import json
import logging
import os
import sys
import uuid
from dataclasses import dataclass, field
from datetime import datetime, date, timedelta, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, Union

DATA_PATH = os.path.expanduser(os.environ.get("HABIT_GARDEN_PATH", "~/.habit-garden.json"))
WIDGET_PATH = os.path.expanduser(
    os.environ.get("HABIT_GARDEN_WIDGET_PATH", "~/.habit-garden-widget.json")
)
DEFAULT_PROFILE = "default"
WIDGET_NAME = "HabitWidgetProvider"
MAX_STREAK_SCAN = 10_000
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger(__name__)

DayLike = Union[date, datetime, str]


class HabitStyle(str, Enum):
    FIRE = "fire"
    PLANT = "plant"
    BOOK = "book"
    GEM = "gem"
    MOON = "moon"


# (name, style, streak) used by HabitGarden.seed_sample
SAMPLE_HABITS = (
    ("Workout", HabitStyle.FIRE, 12),
    ("Read 30 mins", HabitStyle.BOOK, 7),
    ("Meditate", HabitStyle.MOON, 21),
)


class HabitError(Exception):
    """Base class for errors raised by the habit engine."""


class ValidationError(HabitError):
    """Rejected input; nothing was changed."""


class NotFound(HabitError, KeyError):
    def __init__(self, habit_id: str) -> None:
        super().__init__(habit_id)
        self.habit_id = habit_id

    def __str__(self) -> str:
        return f"Habit #{self.habit_id} not found."


def _now_iso() -> str:
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat(timespec="seconds") + "Z"


def _today_local() -> date:
    return datetime.now().date()


def _parse_date(value: str) -> date:
    return datetime.strptime(value, "%Y-%m-%d").date()


def _format_date(value: date) -> str:
    return value.isoformat()


def _parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value or not isinstance(value, str):
        return None
    try:
        if value.endswith("Z"):
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _as_day(value: DayLike) -> date:
    """Normalise a date, datetime or YYYY-MM-DD string to a calendar day."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return _parse_date(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid date '{value}', expected YYYY-MM-DD.") from None


def _new_id() -> str:
    return uuid.uuid4().hex[:8]


def _clean_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Habit name cannot be empty.")
    return name.strip()


def _coerce_style(value: Any) -> HabitStyle:
    if isinstance(value, HabitStyle):
        return value
    try:
        return HabitStyle(value)
    except ValueError:
        options = ", ".join(style.value for style in HabitStyle)
        raise ValidationError(f"Unknown style '{value}'. Choose one of: {options}.") from None


@dataclass
class Habit:
    """One tracked habit.

    ``misses`` holds the days explicitly marked as not done; any other day is
    done. ``streak`` is a cache kept current by HabitGarden and should not be
    written directly.
    """

    name: str
    style: HabitStyle
    id: str = field(default_factory=_new_id)
    streak: int = 0
    auto_tick: bool = True
    start_date: date = field(default_factory=_today_local)
    misses: Set[date] = field(default_factory=set)
    updated_at: Optional[str] = None

    def missed_on(self, day: DayLike) -> bool:
        return _as_day(day) in self.misses


def compute_streak(
    misses: Set[date], start_date: date, today: date, limit: int = MAX_STREAK_SCAN
) -> int:
    """Count consecutive non-missed days ending at ``today``.

    The scan stops at the first missed day or when it walks past
    ``start_date``. A missed ``today`` therefore yields 0.
    """
    count = 0
    cursor = today
    while cursor not in misses and cursor >= start_date:
        if count >= limit:
            logger.warning(
                "Streak scan hit the %d day cap (start %s, today %s); habit history looks corrupt",
                limit,
                _format_date(start_date),
                _format_date(today),
            )
            break
        count += 1
        cursor -= timedelta(days=1)
    return count


def longest_streak(misses: Set[date], start_date: date, today: date) -> int:
    if today < start_date:
        return 0
    longest = 0
    previous = start_date - timedelta(days=1)
    for miss in sorted(d for d in misses if start_date <= d <= today):
        longest = max(longest, (miss - previous).days - 1)
        previous = miss
    return max(longest, (today - previous).days)


def day_window(end_date: date, days: int) -> List[date]:
    return [end_date - timedelta(days=offset) for offset in range(days - 1, -1, -1)]


def _parse_day_set(raw: Any) -> Set[date]:
    if not isinstance(raw, list):
        return set()
    days = set()
    for value in raw:
        if not isinstance(value, str):
            continue
        try:
            days.add(_parse_date(value))
        except ValueError:
            logger.debug("Skipping unparseable miss %r", value)
    return days


def _habit_to_item(habit: Habit) -> Dict[str, Any]:
    return {
        "id": habit.id,
        "name": habit.name,
        "style": habit.style.value,
        "streak": habit.streak,
        "auto_tick": habit.auto_tick,
        "start_date": _format_date(habit.start_date),
        "misses": sorted(_format_date(day) for day in habit.misses),
        "updated_at": habit.updated_at,
    }


def _item_to_habit(item: Any, today: date) -> Optional[Habit]:
    if not isinstance(item, dict):
        return None
    habit_id = item.get("id")
    if isinstance(habit_id, int) and not isinstance(habit_id, bool):
        habit_id = str(habit_id)
    name = item.get("name")
    if not isinstance(habit_id, str) or not habit_id or not isinstance(name, str) or not name.strip():
        return None
    try:
        style = HabitStyle(item.get("style"))
    except ValueError:
        style = HabitStyle.FIRE
    start_date = today
    raw_start = item.get("start_date")
    if isinstance(raw_start, str):
        try:
            start_date = _parse_date(raw_start)
        except ValueError:
            logger.debug("Habit %s has an unparseable start date %r", habit_id, raw_start)
    auto_tick = item.get("auto_tick")
    return Habit(
        name=name.strip(),
        style=style,
        id=habit_id,
        auto_tick=auto_tick if isinstance(auto_tick, bool) else True,
        start_date=start_date,
        misses=_parse_day_set(item.get("misses")),
        updated_at=item.get("updated_at") if isinstance(item.get("updated_at"), str) else None,
    )


Listener = Callable[[str, Optional[Habit]], None]


class Subscription:
    """Handle returned by HabitGarden.subscribe."""

    def __init__(self, garden: "HabitGarden", callback: Listener) -> None:
        self._garden = garden
        self.callback = callback
        self.active = True

    def cancel(self) -> None:
        self._garden.unsubscribe(self)


class HabitGarden:
    """Owns the habits and funnels every mutation through streak recomputation
    and change notification.

    Subscribers are called as ``callback(action, habit)`` after the mutation has
    been applied, where ``action`` is one of ``created``, ``updated``,
    ``toggled``, ``removed`` or ``refreshed`` (``habit`` is None for the last).
    Not safe for concurrent use; callers sharing an instance across threads
    must serialise access themselves.
    """

    def __init__(self, clock: Callable[[], date] = _today_local) -> None:
        self._clock = clock
        self._habits: Dict[str, Habit] = {}
        self._retired_ids: Set[str] = set()
        self._subscriptions: List[Subscription] = []

    @classmethod
    def hydrate(
        cls, items: List[Dict[str, Any]], clock: Callable[[], date] = _today_local
    ) -> "HabitGarden":
        """Build an engine from stored items. Stored streaks are ignored."""
        garden = cls(clock=clock)
        today = garden.today
        for item in items:
            habit = _item_to_habit(item, today)
            if habit is None:
                continue
            if habit.id in garden._habits:
                logger.warning("Skipping duplicate habit id %s in stored data", habit.id)
                continue
            habit.streak = compute_streak(habit.misses, habit.start_date, today)
            garden._habits[habit.id] = habit
        return garden

    @property
    def today(self) -> date:
        return _as_day(self._clock())

    @property
    def habits(self) -> List[Habit]:
        return list(self._habits.values())

    def __len__(self) -> int:
        return len(self._habits)

    def __contains__(self, habit_id: object) -> bool:
        return habit_id in self._habits

    def subscribe(self, callback: Listener) -> Subscription:
        subscription = Subscription(self, callback)
        self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        subscription.active = False
        if subscription in self._subscriptions:
            self._subscriptions.remove(subscription)

    def _notify(self, action: str, habit: Optional[Habit]) -> None:
        for subscription in list(self._subscriptions):
            if subscription.active:
                subscription.callback(action, habit)

    def _next_id(self) -> str:
        habit_id = _new_id()
        while habit_id in self._habits or habit_id in self._retired_ids:
            habit_id = _new_id()
        return habit_id

    def _recompute(self, habit: Habit, today: Optional[date] = None) -> int:
        habit.streak = compute_streak(
            habit.misses, habit.start_date, self.today if today is None else today
        )
        return habit.streak

    def lookup(self, habit_id: str) -> Habit:
        habit = self._habits.get(habit_id)
        if habit is None:
            raise NotFound(habit_id)
        return habit

    def create(
        self,
        name: str,
        style: Union[HabitStyle, str] = HabitStyle.FIRE,
        auto_tick: bool = True,
        start_date: Optional[DayLike] = None,
    ) -> Habit:
        clean_name = _clean_name(name)
        habit_style = _coerce_style(style)
        today = self.today
        start = today if start_date is None else _as_day(start_date)
        habit = Habit(
            name=clean_name,
            style=habit_style,
            id=self._next_id(),
            auto_tick=bool(auto_tick),
            start_date=start,
            updated_at=_now_iso(),
        )
        self._recompute(habit, today)
        self._habits[habit.id] = habit
        logger.debug("Created habit %s (%s)", habit.id, habit.name)
        self._notify("created", habit)
        return habit

    def toggle_day(self, habit_id: str, day: Optional[DayLike] = None) -> int:
        """Flip ``day`` (default today) between missed and done; return the new streak."""
        habit = self.lookup(habit_id)
        today = self.today
        target = today if day is None else _as_day(day)
        if target in habit.misses:
            habit.misses.discard(target)
        else:
            habit.misses.add(target)
        self._recompute(habit, today)
        habit.updated_at = _now_iso()
        logger.debug(
            "Toggled habit %s on %s (missed=%s, streak=%d)",
            habit.id,
            _format_date(target),
            target in habit.misses,
            habit.streak,
        )
        self._notify("toggled", habit)
        return habit.streak

    def update(
        self,
        habit_id: str,
        name: Optional[str] = None,
        style: Optional[Union[HabitStyle, str]] = None,
        auto_tick: Optional[bool] = None,
    ) -> Habit:
        habit = self.lookup(habit_id)
        clean_name = None if name is None else _clean_name(name)
        habit_style = None if style is None else _coerce_style(style)
        if clean_name is not None:
            habit.name = clean_name
        if habit_style is not None:
            habit.style = habit_style
        if auto_tick is not None:
            habit.auto_tick = bool(auto_tick)
        self._recompute(habit)
        habit.updated_at = _now_iso()
        self._notify("updated", habit)
        return habit

    def remove(self, habit_id: str) -> Habit:
        habit = self.lookup(habit_id)
        del self._habits[habit_id]
        self._retired_ids.add(habit_id)
        logger.debug("Removed habit %s (%s)", habit.id, habit.name)
        self._notify("removed", habit)
        return habit

    def refresh(self) -> List[Habit]:
        """Recompute every streak against the current day, e.g. after midnight."""
        today = self.today
        changed = []
        for habit in self._habits.values():
            previous = habit.streak
            if self._recompute(habit, today) != previous:
                changed.append(habit)
        if changed:
            self._notify("refreshed", None)
        return changed

    def is_done(self, habit_id: str, day: Optional[DayLike] = None) -> bool:
        habit = self.lookup(habit_id)
        target = self.today if day is None else _as_day(day)
        return target not in habit.misses

    def recent_days(
        self, habit_id: str, days: int = 14, end: Optional[DayLike] = None
    ) -> List[Tuple[date, bool]]:
        habit = self.lookup(habit_id)
        end_date = self.today if end is None else _as_day(end)
        return [(day, day not in habit.misses) for day in day_window(end_date, days)]

    def seed_sample(self) -> List[Habit]:
        if self._habits:
            return []
        today = self.today
        return [
            self.create(name, style, start_date=today - timedelta(days=streak - 1))
            for name, style, streak in SAMPLE_HABITS
        ]

    def snapshot(self) -> List[Dict[str, Any]]:
        return [_habit_to_item(habit) for habit in self._habits.values()]


def load_items(path: Optional[str] = None) -> List[Dict[str, Any]]:
    path = path or DATA_PATH
    if not os.path.exists(path):
        return []
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    if not isinstance(data, list):
        return []
    return [i for i in data if isinstance(i, dict)]


def save_items(items: List[Dict[str, Any]], path: Optional[str] = None) -> None:
    with open(path or DATA_PATH, "w", encoding="utf-8") as f:
        json.dump(items, f, indent=2, sort_keys=True)


def attach_store(garden: HabitGarden, path: Optional[str] = None) -> Subscription:
    """Persist the whole collection after every mutation."""
    target = path or DATA_PATH

    def _save(_action: str, _habit: Optional[Habit]) -> None:
        save_items(garden.snapshot(), target)

    return garden.subscribe(_save)


class WidgetMirror:
    """Writes a home-screen widget snapshot after every mutation.

    The snapshot features one habit under the ``habit_name``/``habit_streak``
    keys: the habit the last change concerned, or the highest streak after a
    refresh or removal.
    """

    def __init__(self, garden: HabitGarden, path: Optional[str] = None) -> None:
        self.garden = garden
        self.path = path or WIDGET_PATH
        self._featured_id: Optional[str] = None
        self._subscription: Optional[Subscription] = None

    def attach(self) -> Subscription:
        if self._subscription is None or not self._subscription.active:
            self._subscription = self.garden.subscribe(self._on_change)
        return self._subscription

    def detach(self) -> None:
        if self._subscription is not None:
            self._subscription.cancel()

    def _on_change(self, action: str, habit: Optional[Habit]) -> None:
        if habit is None or action == "removed":
            self._featured_id = None
        else:
            self._featured_id = habit.id
        self.write()

    def featured(self) -> Optional[Habit]:
        if self._featured_id is not None and self._featured_id in self.garden:
            return self.garden.lookup(self._featured_id)
        habits = self.garden.habits
        if not habits:
            return None
        return max(habits, key=lambda habit: habit.streak)

    def payload(self) -> Dict[str, Any]:
        today = self.garden.today
        featured = self.featured()
        return {
            "widget": WIDGET_NAME,
            "habit_name": featured.name if featured else None,
            "habit_streak": featured.streak if featured else None,
            "habits": [
                {
                    "id": habit.id,
                    "name": habit.name,
                    "streak": habit.streak,
                    "done_today": today not in habit.misses,
                }
                for habit in self.garden.habits
            ],
            "updated_at": _now_iso(),
        }

    def write(self) -> None:
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(self.payload(), f, indent=2, sort_keys=True)


def _open_garden() -> Tuple[HabitGarden, WidgetMirror]:
    garden = HabitGarden.hydrate(load_items())
    attach_store(garden)
    mirror = WidgetMirror(garden)
    mirror.attach()
    return garden, mirror


def _db_profile() -> str:
    return os.environ.get("HABIT_GARDEN_PROFILE", DEFAULT_PROFILE)


def _db_url() -> Optional[str]:
    return os.environ.get("DATABASE_URL") or os.environ.get("HABIT_GARDEN_DB_URL")


def _get_db_connection():
    db_url = _db_url()
    if not db_url:
        print("Database sync needs DATABASE_URL or HABIT_GARDEN_DB_URL.")
        return None
    try:
        import psycopg
    except ImportError:
        print("Database sync needs psycopg installed (pip install 'psycopg[binary]').")
        return None
    return psycopg.connect(db_url)


def _ensure_table(cursor) -> None:
    cursor.execute(
        """
        CREATE TABLE IF NOT EXISTS habit_garden_items (
            profile TEXT NOT NULL,
            id TEXT NOT NULL,
            name TEXT NOT NULL,
            style TEXT NOT NULL,
            auto_tick BOOLEAN,
            start_date TEXT NOT NULL,
            misses JSONB,
            updated_at TEXT,
            PRIMARY KEY (profile, id)
        )
        """
    )


def _compare_updated(
    local_item: Dict[str, Any], db_item: Dict[str, Any]
) -> Tuple[Optional[datetime], Optional[datetime]]:
    return (
        _parse_iso_datetime(local_item.get("updated_at")),
        _parse_iso_datetime(db_item.get("updated_at")),
    )


def _merge_items(
    local_items: List[Dict[str, Any]], db_items: List[Dict[str, Any]]
) -> List[Dict[str, Any]]:
    """Newer ``updated_at`` wins per id; local-only habits are kept."""
    local_by_id = {item.get("id"): item for item in local_items if isinstance(item.get("id"), str)}
    merged: List[Dict[str, Any]] = []
    merged_ids: Set[str] = set()
    for db_item in db_items:
        local_item = local_by_id.get(db_item["id"])
        if local_item:
            local_updated, db_updated = _compare_updated(local_item, db_item)
            if db_updated and (not local_updated or db_updated > local_updated):
                merged.append(db_item)
            else:
                merged.append(local_item)
        else:
            merged.append(db_item)
        merged_ids.add(db_item["id"])
    for item_id, local_item in local_by_id.items():
        if item_id not in merged_ids:
            merged.append(local_item)
    return merged


def cmd_add(args: argparse.Namespace) -> None:
    garden, _ = _open_garden()
    habit = garden.create(args.name, style=args.style, auto_tick=args.auto_tick)
    print(f"Added habit #{habit.id}: {habit.name} ({habit.style.value})")


def cmd_list(_: argparse.Namespace) -> None:
    garden, _ = _open_garden()
    if not len(garden):
        print("No habits yet.")
        return
    today = garden.today
    for habit in garden.habits:
        status = "·" if today in habit.misses else "✓"
        print(
            f"{habit.id} {status} {habit.name} "
            f"({habit.style.value}, {habit.streak} day streak, since {_format_date(habit.start_date)})"
        )


def cmd_toggle(args: argparse.Namespace) -> None:
    garden, _ = _open_garden()
    day = garden.today if args.date is None else _as_day(args.date)
    streak = garden.toggle_day(args.id, day)
    habit = garden.lookup(args.id)
    state = "missed" if day in habit.misses else "done"
    print(f"Marked habit #{habit.id} as {state} on {_format_date(day)}. Current streak: {streak} day(s)")


def cmd_edit(args: argparse.Namespace) -> None:
    if args.name is None and args.style is None and args.auto_tick is None:
        print("Nothing to change. Use --name, --style or --auto-tick/--no-auto-tick.")
        return
    garden, _ = _open_garden()
    old_name = garden.lookup(args.id).name
    habit = garden.update(args.id, name=args.name, style=args.style, auto_tick=args.auto_tick)
    auto_label = "on" if habit.auto_tick else "off"
    print(
        f"Updated habit #{habit.id}: {old_name} -> {habit.name} "
        f"({habit.style.value}, auto-tick {auto_label})"
    )


def cmd_delete(args: argparse.Namespace) -> None:
    garden, _ = _open_garden()
    habit = garden.remove(args.id)
    print(f"Deleted habit #{habit.id}: {habit.name}")


def cmd_show(args: argparse.Namespace) -> None:
    if args.days <= 0:
        print("Days must be at least 1.")
        return
    garden, _ = _open_garden()
    habit = garden.lookup(args.id)
    end_date = garden.today if args.date is None else _as_day(args.date)
    days = garden.recent_days(habit.id, args.days, end_date)
    print(f"{habit.name} ({habit.style.value})")
    print(f"Current streak: {habit.streak} day(s)")
    print(f"Best streak: {longest_streak(habit.misses, habit.start_date, garden.today)} day(s)")
    print(f"Started: {_format_date(habit.start_date)}")
    print(f"Auto-tick: {'on' if habit.auto_tick else 'off'}")
    print(f"Last {args.days} days: {_format_date(days[0][0])} → {_format_date(days[-1][0])}")
    for day, done in days:
        mark = "✓" if done else "·"
        print(f"{_format_date(day)} {day.strftime('%a')} {mark}")


def cmd_streak(args: argparse.Namespace) -> None:
    garden, _ = _open_garden()
    habit = garden.lookup(args.id)
    day = garden.today if args.date is None else _as_day(args.date)
    print(f"Current streak: {compute_streak(habit.misses, habit.start_date, day)} day(s)")
    print(f"Longest streak: {longest_streak(habit.misses, habit.start_date, day)} day(s)")
    print(f"Total misses: {len(habit.misses)}")


def cmd_report(args: argparse.Namespace) -> None:
    if args.days <= 0:
        print("Days must be at least 1.")
        return
    garden, _ = _open_garden()
    if not len(garden):
        print("No habits yet.")
        return
    end_date = garden.today if args.date is None else _as_day(args.date)
    window = day_window(end_date, args.days)
    print(f"Report window: {_format_date(window[0])} → {_format_date(window[-1])} ({args.days} days)")
    total_done = 0
    total_tracked = 0
    for habit in garden.habits:
        tracked = [day for day in window if day >= habit.start_date]
        done = sum(1 for day in tracked if day not in habit.misses)
        total_done += done
        total_tracked += len(tracked)
        rate = (done / len(tracked)) * 100 if tracked else 0
        print(
            f"{habit.id} {habit.name} | "
            f"{done}/{len(tracked)} ({rate:.0f}%) | "
            f"current {compute_streak(habit.misses, habit.start_date, end_date)} | "
            f"best {longest_streak(habit.misses, habit.start_date, end_date)}"
        )
    overall_rate = (total_done / total_tracked) * 100 if total_tracked else 0
    print(f"Overall done: {total_done}/{total_tracked} ({overall_rate:.0f}%)")


def cmd_stats(_: argparse.Namespace) -> None:
    garden, _ = _open_garden()
    if not len(garden):
        print("No habits yet.")
        return
    today = garden.today
    habits = garden.habits
    missed_today = sum(1 for habit in habits if today in habit.misses)
    best = max(habits, key=lambda habit: habit.streak)
    print(f"Total: {len(habits)}")
    print(f"Done today: {len(habits) - missed_today}")
    print(f"Missed today: {missed_today}")
    print(f"Misses recorded: {sum(len(habit.misses) for habit in habits)}")
    print(f"Best current streak: {best.streak} day(s) ({best.name})")


def cmd_seed(_: argparse.Namespace) -> None:
    garden, _ = _open_garden()
    created = garden.seed_sample()
    if not created:
        print("Garden already has habits; nothing seeded.")
        return
    for habit in created:
        print(f"Added habit #{habit.id}: {habit.name} ({habit.streak} day streak)")


def cmd_widget(_: argparse.Namespace) -> None:
    _, mirror = _open_garden()
    print(json.dumps(mirror.payload(), indent=2, sort_keys=True))


def cmd_sync(_: argparse.Namespace) -> None:
    garden, _ = _open_garden()
    items = garden.snapshot()
    if not items:
        print("No habits to sync.")
        return
    conn = _get_db_connection()
    if conn is None:
        return
    profile = _db_profile()
    with conn:
        with conn.cursor() as cursor:
            _ensure_table(cursor)
            for item in items:
                cursor.execute(
                    """
                    INSERT INTO habit_garden_items
                        (profile, id, name, style, auto_tick, start_date, misses, updated_at)
                    VALUES (%(profile)s, %(id)s, %(name)s, %(style)s, %(auto_tick)s, %(start_date)s, %(misses)s::jsonb, %(updated_at)s)
                    ON CONFLICT (profile, id) DO UPDATE SET
                        name = EXCLUDED.name,
                        style = EXCLUDED.style,
                        auto_tick = EXCLUDED.auto_tick,
                        start_date = EXCLUDED.start_date,
                        misses = EXCLUDED.misses,
                        updated_at = EXCLUDED.updated_at
                    """,
                    {
                        "profile": profile,
                        "id": item["id"],
                        "name": item["name"],
                        "style": item["style"],
                        "auto_tick": item["auto_tick"],
                        "start_date": item["start_date"],
                        "misses": json.dumps(item["misses"]),
                        "updated_at": item["updated_at"],
                    },
                )
    conn.close()
    print(f"Synced {len(items)} habit(s) to profile '{profile}'.")


def cmd_pull(_: argparse.Namespace) -> None:
    conn = _get_db_connection()
    if conn is None:
        return
    profile = _db_profile()
    with conn:
        with conn.cursor() as cursor:
            _ensure_table(cursor)
            cursor.execute(
                """
                SELECT id, name, style, auto_tick, start_date, misses, updated_at
                FROM habit_garden_items
                WHERE profile = %s
                ORDER BY id
                """,
                (profile,),
            )
            rows = cursor.fetchall()
    conn.close()
    if not rows:
        print(f"No habits found for profile '{profile}'.")
        return
    db_items = [
        {
            "id": row[0],
            "name": row[1],
            "style": row[2],
            "auto_tick": row[3],
            "start_date": row[4],
            "misses": row[5] if isinstance(row[5], list) else json.loads(row[5]) if row[5] else [],
            "updated_at": row[6],
        }
        for row in rows
    ]
    merged = _merge_items(load_items(), db_items)
    # Round-trip through the engine so stored streaks are recomputed.
    save_items(HabitGarden.hydrate(merged).snapshot())
    print(f"Pulled {len(rows)} habit(s) from profile '{profile}' into local store.")


def _configure_logging() -> None:
    level_name = os.environ.get("HABIT_GARDEN_LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.WARNING), format=LOG_FORMAT)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Local-first habit tracker")
    sub = parser.add_subparsers(dest="command", required=True)
    styles = [style.value for style in HabitStyle]

    add = sub.add_parser("add", help="Add a new habit")
    add.add_argument("name", help="Habit name")
    add.add_argument("--style", choices=styles, default=HabitStyle.FIRE.value, help="Streak style")
    add.add_argument(
        "--no-auto-tick", dest="auto_tick", action="store_false", help="Record auto-tick as off"
    )
    add.set_defaults(func=cmd_add)

    list_cmd = sub.add_parser("list", help="List habits")
    list_cmd.set_defaults(func=cmd_list)

    toggle = sub.add_parser("toggle", help="Flip a day between done and missed")
    toggle.add_argument("id", help="Habit id")
    toggle.add_argument("--date", help="Override date (YYYY-MM-DD)")
    toggle.set_defaults(func=cmd_toggle)

    edit = sub.add_parser("edit", help="Rename or restyle a habit")
    edit.add_argument("id", help="Habit id")
    edit.add_argument("--name", help="New habit name")
    edit.add_argument("--style", choices=styles, help="New streak style")
    auto = edit.add_mutually_exclusive_group()
    auto.add_argument("--auto-tick", dest="auto_tick", action="store_const", const=True)
    auto.add_argument("--no-auto-tick", dest="auto_tick", action="store_const", const=False)
    edit.set_defaults(func=cmd_edit, auto_tick=None)

    delete = sub.add_parser("delete", help="Delete a habit")
    delete.add_argument("id", help="Habit id")
    delete.set_defaults(func=cmd_delete)

    show = sub.add_parser("show", help="Show streak stats and recent days for a habit")
    show.add_argument("id", help="Habit id")
    show.add_argument("--days", type=int, default=14, help="Number of days to include")
    show.add_argument("--date", help="Override end date (YYYY-MM-DD)")
    show.set_defaults(func=cmd_show)

    streak = sub.add_parser("streak", help="Show the streak as of a given day")
    streak.add_argument("id", help="Habit id")
    streak.add_argument("--date", help="Override date (YYYY-MM-DD)")
    streak.set_defaults(func=cmd_streak)

    report = sub.add_parser("report", help="Weekly or custom habit summary")
    report.add_argument("--days", type=int, default=7, help="Number of days to include")
    report.add_argument("--date", help="Override end date (YYYY-MM-DD)")
    report.set_defaults(func=cmd_report)

    stats = sub.add_parser("stats", help="Show habit stats")
    stats.set_defaults(func=cmd_stats)

    seed = sub.add_parser("seed", help="Add sample habits to an empty garden")
    seed.set_defaults(func=cmd_seed)

    widget = sub.add_parser("widget", help="Print the home-screen widget snapshot")
    widget.set_defaults(func=cmd_widget)

    sync = sub.add_parser("sync", help="Sync local habits to Postgres")
    sync.set_defaults(func=cmd_sync)

    pull = sub.add_parser("pull", help="Pull habits from Postgres into local store")
    pull.set_defaults(func=cmd_pull)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging()
    try:
        args.func(args)
    except HabitError as exc:
        print(str(exc))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
