app_name = "lab_scheduling"
app_title = "Lab Scheduling"
app_publisher = "Sebastian Ortiz Valencia"
app_description = "Agendamiento de laboratorios de ensayo: disponibilidad, conflictos, alternativas y extensiones"
app_email = "sebastianortiz989@gmail.com"
app_license = "mit"

# Apps
# ------------------

# required_apps = []

# Installation
# ------------

# before_install = "lab_scheduling.install.before_install"
# after_install = "lab_scheduling.install.after_install"

# Document Events
# ---------------
# Lab Booking Request maneja su ciclo de vida en su propio controller
# (lab_scheduling/lab_scheduling/doctype/lab_booking_request).

# doc_events = {}

# Scheduled Tasks
# ---------------
# El core de agendamiento es síncrono: no hay tareas programadas.

# scheduler_events = {}

# Testing
# -------

# before_tests = "lab_scheduling.install.before_tests"

# Site config
# -----------
# Claves opcionales en site_config.json:
# 	lab_scheduling_max_alternatives: máximo de alternativas sugeridas (default 5)
# 	lab_scheduling_calendar_days: ventana por defecto del calendario (default 30)

# User Data Protection
# --------------------

# user_data_fields = []
