# published site fields
GREEN_SHARE_HOME = "greenShareHome"
GREEN_SHARE_LOADPOINTS = "greenShareLoadpoints"

TARIFF_GRID = "tariffGrid"
TARIFF_FEED_IN = "tariffFeedIn"
TARIFF_CO2 = "tariffCo2"
TARIFF_SOLAR = "tariffSolar"
TARIFF_PRICE_HOME = "tariffPriceHome"
TARIFF_CO2_HOME = "tariffCo2Home"
TARIFF_PRICE_LOADPOINTS = "tariffPriceLoadpoints"
TARIFF_CO2_LOADPOINTS = "tariffCo2Loadpoints"

FORECAST = "forecast"
