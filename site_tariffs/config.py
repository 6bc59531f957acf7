FORECAST_HOURS = 48       # how far ahead fixed tariffs are expanded
SLOT_MINUTES = 30         # length of a generated tariff slot
TIMEZONE = "Europe/London"  # calendar days for the solar yield buckets

FLAT_IMPORT_PRICE = 0.30  # £/kWh
FLAT_FEEDIN_PRICE = 0.05  # £/kWh

TOU_PERIODS = [
    # start_hour (24h), end_hour, price in £/kWh
    (0, 6, 0.12),   # cheap overnight
    (6, 16, 0.30),  # daytime rate
    (16, 19, 0.40), # peak rate
    (19, 24, 0.25)  # evening rate
]

REFERENCE_DURATION_S = 3600.0  # load max power is given per hour
MIN_SCALE_ENERGY_KWH = 0.5     # produced + forecast below this publishes no scale

SOLAR_ACC_FORECAST_KEY = "solarAccForecast"
