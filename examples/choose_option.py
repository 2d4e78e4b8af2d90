# examples/choose_option.py
"""
A holder asks its view to let the user pick one of several options.

Run with ``python examples/choose_option.py``. The "view" here is a console
prompt; in a real application it would be a bottom sheet or dialog.
"""

import argparse
import asyncio
import logging
from dataclasses import dataclass, field
from typing import List

from ui_actionable import ActionsListener, StateHolder, UiActionableMixin, load_channel_settings

logger = logging.getLogger('choose_option')


@dataclass
class PickerState:
    picked: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class ChooseOption:
    options: List[str]


class PickerHolder(UiActionableMixin[ChooseOption], StateHolder[PickerState]):
    async def on_button_pressed(self) -> None:
        result = await self.emit_ui_action(ChooseOption(['First', 'Second', 'Third']), result_type=str)
        logger.info('Holder got: %s', result)
        if result is not None:
            self.emit(PickerState(picked=[*self.state.picked, result]))


async def _ask_console(state: PickerState, action: ChooseOption, complete) -> None:
    for i, option in enumerate(action.options, start=1):
        print(f"  {i}. {option}")
    answer = await asyncio.to_thread(input, 'Select (empty to dismiss): ')
    if answer.strip().isdigit() and 1 <= int(answer) <= len(action.options):
        complete(action.options[int(answer) - 1])
    else:
        complete(None)


async def main(rounds: int) -> None:
    holder = PickerHolder(PickerState(), action_settings=load_channel_settings(overrides={'component_id': 'picker'}))
    log_listener = ActionsListener(lambda state, action: logger.info('View saw %s (picked so far: %s)',
                                                                     action, state.picked), holder=holder)
    picker = ActionsListener.completable(_ask_console, discover=lambda: holder)
    log_listener.did_change_dependencies()
    picker.did_change_dependencies()
    try:
        for _ in range(rounds):
            await holder.on_button_pressed()
    finally:
        picker.dispose()
        log_listener.dispose()
        await holder.close()
    logger.info('Picked: %s', holder.state.picked)


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument('--rounds', type=int, default=1)
    parser.add_argument('--debug', action='store_true', help='Enable DEBUG logging')
    args = parser.parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )
    asyncio.run(main(args.rounds))
