"""Click utilities."""

import typing as t

import click
from pytimeparse2 import parse

from .mysql_utils import parse_mysql_url


class OptionEatAll(click.Option):
    """Taken from https://stackoverflow.com/questions/48391777/nargs-equivalent-for-options-in-click#answer-48394004."""  # noqa: ignore=E501 pylint: disable=C0301

    def __init__(self, *args, **kwargs):
        """Override."""
        self.save_other_options = kwargs.pop("save_other_options", True)
        nargs = kwargs.pop("nargs", -1)
        if nargs != -1:
            raise ValueError(f"nargs, if set, must be -1 not {nargs}")
        super(OptionEatAll, self).__init__(*args, **kwargs)
        self._previous_parser_process = None
        self._eat_all_parser = None

    def add_to_parser(self, parser, ctx) -> None:
        """Override."""

        def parser_process(value, state) -> None:
            # method to hook to the parser.process
            done: bool = False
            value = [value]
            if self.save_other_options:
                # grab everything up to the next option
                while state.rargs and not done:
                    for prefix in self._eat_all_parser.prefixes:
                        if state.rargs[0].startswith(prefix):
                            done = True
                    if not done:
                        value.append(state.rargs.pop(0))
            else:
                # grab everything remaining
                value += state.rargs
                state.rargs[:] = []
            value = tuple(value)

            # call the actual process
            self._previous_parser_process(value, state)

        retval = super(OptionEatAll, self).add_to_parser(parser, ctx)  # pylint: disable=E1111
        for name in self.opts:
            # pylint: disable=W0212
            our_parser = parser._long_opt.get(name) or parser._short_opt.get(name)
            if our_parser:
                self._eat_all_parser = our_parser
                self._previous_parser_process = our_parser.process
                our_parser.process = parser_process
                break
        return retval


class Duration(click.ParamType):
    """A number of seconds, either plain (``0.5``) or human readable (``100ms``, ``1h``)."""

    name = "duration"

    def convert(self, value: t.Any, param: t.Optional[click.Parameter], ctx: t.Optional[click.Context]) -> float:
        if isinstance(value, (int, float)):
            seconds: t.Optional[t.Union[int, float]] = value
        else:
            try:
                seconds = float(str(value).strip())
            except ValueError:
                seconds = parse(str(value).strip())
        if seconds is None or seconds < 0:
            self.fail(f"{value!r} is not a valid duration", param, ctx)
        return float(seconds)  # type: ignore[arg-type]


DURATION = Duration()


def validate_mysql_url(ctx: click.core.Context, param: t.Any, value: t.Optional[str]):  # pylint: disable=W0613
    """Reject malformed MySQL URLs before anything connects."""
    if value is None:
        return value
    try:
        parse_mysql_url(value)
    except ValueError as err:
        raise click.BadParameter(str(err)) from err
    return value
