"""
Multiplexing bookkeeping for one message.

A message keeps the list of its multiplexor (switch) signals and a case
table switch -> {selector -> [dependent signals]}. Each multiplexed signal
mirrors its own entry through mux_switch / mux_selector. The functions here
keep both sides consistent when signals are bound to or unbound from a
message; CanDatabase calls them after all other validation passed.
"""

from typing import Callable, Optional

from .arena import SignalKey
from .enums import MuxRole
from .errors import MultiplexingError
from .models import Message, MuxSelector, Signal

SignalLookup = Callable[[SignalKey], Optional[Signal]]


def resolve_switch(
    message: Message,
    signal_name: str,
    role: MuxRole,
    selector: Optional[MuxSelector],
    switch: Optional[SignalKey],
) -> Optional[SignalKey]:
    """
    Validate a binding request and work out the switch of a multiplexed signal.

    Returns:
        The switch key, or None when the signal is not multiplexed or the
        switch cannot be inferred yet (it is attached once a multiplexor is
        bound).

    Raises:
        MultiplexingError: Missing selector or unknown explicit switch
    """
    if role is not MuxRole.MULTIPLEXED:
        return None
    if selector is None:
        raise MultiplexingError(f"Multiplexed signal '{signal_name}' needs a selector", signal_name)
    if switch is not None:
        if switch not in message.mux_multiplexors:
            raise MultiplexingError(
                f"Switch for '{signal_name}' is not a multiplexor of message '{message.name}'",
                signal_name,
            )
        return switch
    if len(message.mux_multiplexors) == 1:
        return message.mux_multiplexors[0]
    return None


def attach(
    message: Message,
    key: SignalKey,
    signal: Signal,
    role: MuxRole,
    selector: Optional[MuxSelector],
    switch: Optional[SignalKey],
    lookup: SignalLookup,
) -> None:
    """Record a newly bound signal in the message case table."""
    signal.mux_role = role
    signal.mux_switch = None
    signal.mux_selector = selector if role is MuxRole.MULTIPLEXED else None

    if role is MuxRole.MULTIPLEXOR:
        message.mux_multiplexors.append(key)
        message.mux_cases[key] = {}
        if len(message.mux_multiplexors) == 1:
            # Dependents bound before their switch
            for other_key in message.signals:
                other = lookup(other_key)
                if (
                    other is not None
                    and other_key != key
                    and other.mux_role is MuxRole.MULTIPLEXED
                    and other.mux_switch is None
                    and other.mux_selector is not None
                ):
                    _add_case(message, key, other_key, other)
    elif role is MuxRole.MULTIPLEXED and switch is not None:
        _add_case(message, switch, key, signal)


def detach(message: Message, key: SignalKey, signal: Signal, lookup: SignalLookup) -> None:
    """Remove an unbinding signal from the case table on both sides."""
    if key in message.mux_multiplexors:
        message.mux_multiplexors.remove(key)
        message.mux_cases.pop(key, None)
        for other_key in message.signals:
            other = lookup(other_key)
            if other is not None and other.mux_switch == key:
                other.mux_switch = None

    if signal.mux_switch is not None:
        cases = message.mux_cases.get(signal.mux_switch, {})
        dependents = cases.get(signal.mux_selector, [])  # type: ignore[arg-type]
        if key in dependents:
            dependents.remove(key)
        if not dependents:
            cases.pop(signal.mux_selector, None)  # type: ignore[arg-type]
    signal.mux_switch = None


def active_signals(message: Message, payload: bytes, lookup: SignalLookup) -> list[SignalKey]:
    """
    Signals present in one concrete frame.

    Unmultiplexed signals and switches are always present; a multiplexed
    signal is present when its selector matches its switch's raw value.
    Multiplexed signals whose switch is unresolved are skipped.
    """
    present = []
    switch_values: dict[SignalKey, int] = {}
    for key in message.signals:
        signal = lookup(key)
        if signal is None:
            continue
        if signal.mux_role is not MuxRole.MULTIPLEXED:
            present.append(key)
            continue
        if signal.mux_switch is None or signal.mux_selector is None:
            continue
        if signal.mux_switch not in switch_values:
            switch = lookup(signal.mux_switch)
            if switch is None:
                continue
            switch_values[signal.mux_switch] = switch.extract_raw(payload)
        if signal.mux_selector.matches(switch_values[signal.mux_switch]):
            present.append(key)
    return present


def _add_case(message: Message, switch: SignalKey, key: SignalKey, signal: Signal) -> None:
    signal.mux_switch = switch
    message.mux_cases.setdefault(switch, {}).setdefault(signal.mux_selector, []).append(key)  # type: ignore[arg-type]
