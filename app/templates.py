# app/templates.py
from datetime import datetime
from pathlib import Path

from fastapi.templating import Jinja2Templates

from app.engine.rows import format_time_label

# Create a single templates instance for the entire application
templates = Jinja2Templates(directory=str(Path(__file__).resolve().parent / "templates"))

# Add current_year as a global variable
templates.env.globals["current_year"] = datetime.now().year

# '09:30' -> '9:30am' for the booking time picker
templates.env.filters["time_label"] = format_time_label
