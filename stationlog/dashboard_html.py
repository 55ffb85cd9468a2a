from __future__ import annotations

from html import escape

from stationlog.clock import format_clock, local_offset_seconds
from stationlog.config import STEAM_PROFILE_URL
from stationlog.models import OccupancyEvent, StationHistory
from stationlog.state import DashboardView

# (background, alternate row background, text)
_DARK = ("#2b2b2b", "#3b3b3b", "#dfdfdf")
_LIGHT = ("#dfdfdf", "#cfcfcf", "black")


def _server_select_html(view: DashboardView) -> str:
    options = []
    for s in view.servers:
        selected = " selected" if s.code == view.selected_server else ""
        options.append(f'<option value="{escape(s.code)}"{selected}>{escape(s.name)}</option>')
    return (
        '<form method="post" action="/server" class="inline">'
        '<select name="server_code" onchange="this.form.submit()">'
        f'{"".join(options)}'
        '</select>'
        '</form>'
    )


def _filter_select_html(view: DashboardView) -> str:
    options = ['<option value=""></option>']
    for prefix in view.prefixes:
        selected = " selected" if prefix == view.filter_text else ""
        options.append(f'<option value="{escape(prefix)}"{selected}>{escape(prefix)}</option>')
    return (
        '<form method="post" action="/filter">'
        '<select name="station" onchange="this.form.submit()">'
        f'{"".join(options)}'
        '</select>'
        '</form>'
    )


def _occupant_html(event: OccupancyEvent) -> str:
    if event.is_bot:
        return "<a>BOT</a>"
    url = STEAM_PROFILE_URL.format(steam_id=event.occupant)
    return f'<a href="{escape(url)}" target="_blank">{escape(event.occupant)}</a>'


def _station_html(history: StationHistory, bg: str, offset: int) -> str:
    rows = [
        f'<p>{format_clock(e.time, offset)} {_occupant_html(e)}</p>'
        for e in history.events
    ]
    return (
        f'<div class="station" style="background-color:{bg}">'
        f'<p class="prefix">{escape(history.prefix)}</p>'
        f'{"".join(rows)}'
        f'</div>'
    )


def _stations_html(view: DashboardView, offset: int) -> str:
    bg, alt_bg, _ = _DARK if view.dark else _LIGHT
    return "".join(
        _station_html(h, bg if i % 2 == 0 else alt_bg, offset)
        for i, h in enumerate(view.stations)
    )


_REFRESH_CHOICES = (0.0, 1.0, 5.0, 10.0, 30.0, 60.0)


def _refresh_options_html(default_seconds: float) -> str:
    choices = sorted(set(_REFRESH_CHOICES) | {default_seconds})
    return "".join(
        f'<option value="{c:g}">{"off" if c == 0 else f"{c:g} s"}</option>'
        for c in choices
    )


_PAGE = """\
<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width,initial-scale=1">
<title>SimRail station log</title>
<style>
*{{box-sizing:border-box}}
body{{margin:0;padding:.8rem;font:14px/1.4 sans-serif}}
form{{margin:.2rem 0}}
form.inline{{display:inline}}
.station{{padding:.3rem .6rem}}
.station p{{margin:.1rem 0}}
.prefix{{font-weight:bold}}
a{{color:inherit}}
.refresh{{float:right;font-size:.8rem}}
</style>
</head>
<body style="background-color:{bg};color:{fg}">
<span class="refresh">auto-refresh:&nbsp;<select id="rsel" onchange="setR(this.value)">
{refresh_options}
</select></span>
{server_select}
<form method="post" action="/theme" class="inline"><button type="submit">{theme_icon}</button></form>
<div>
{filter_select}
{stations}
</div>
<script>
var _rt=null;
function _due(v){{
  var el=document.activeElement;
  if(el&&el.tagName==='SELECT'){{_rt=setTimeout(function(){{_due(v);}},v*1000);return;}}
  location.reload();
}}
function setR(v){{
  localStorage.setItem('ar',v);
  if(_rt)clearTimeout(_rt);
  _rt=null;
  if(parseFloat(v)>0)_rt=setTimeout(function(){{_due(v);}},v*1000);
}}
(function(){{
  var sel=document.getElementById('rsel');
  var v=localStorage.getItem('ar');
  if(v===null||!sel.querySelector('option[value="'+v+'"]'))v='{refresh_default}';
  sel.value=v;
  setR(v);
}})();
</script>
</body>
</html>
"""


def render_dashboard_page(view: DashboardView, *, refresh_seconds: float = 1.0) -> str:
    """Render the whole dashboard. Times use the local offset at render time.

    The page reloads itself every `refresh_seconds` unless the viewer picks
    another interval (or off) in the auto-refresh selector. A reload is held
    back while a dropdown has focus.
    """
    bg, _, fg = _DARK if view.dark else _LIGHT
    offset = local_offset_seconds()
    return _PAGE.format(
        bg=bg,
        fg=fg,
        server_select=_server_select_html(view),
        theme_icon="&#9728;" if view.dark else "&#9789;",
        filter_select=_filter_select_html(view),
        stations=_stations_html(view, offset),
        refresh_options=_refresh_options_html(refresh_seconds),
        refresh_default=f"{refresh_seconds:g}",
    )
