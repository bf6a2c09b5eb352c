"""Board and alert rendering."""

from .render import count_status, render_alerts, render_board
