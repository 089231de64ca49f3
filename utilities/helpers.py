# utilities/helpers.py

from datetime import datetime


def timestamp_ms(now=None):
    """Milliseconds since the epoch, as stored on votes and aggregates"""
    now = now or datetime.now()
    return int(now.timestamp() * 1000)


def log_message(message, widget=None):
    """Log a timestamped message to the terminal or a text widget if provided"""
    ts = datetime.now().strftime('%H:%M:%S')
    line = f"[{ts}] {message}"
    if widget and hasattr(widget, 'insert'):
        widget.insert('end', line + "\n")
        widget.see('end')
        widget.update_idletasks()
    else:
        print(line)
