# Workers: background loops. The odds poller normally runs inside the API
# process (see main.lifespan); run it standalone from backend/ with:
#   python -m workers.odds_poller
