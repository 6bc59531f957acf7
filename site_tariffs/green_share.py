from site_tariffs.rates import RateNotAvailable
from site_tariffs.tariffs import now


def green_share(pv_power, battery_power, power_from, power_to):
    """
    Share of the consumption band [power_from, power_to) covered by self-produced power.

    Consumption below `power_from` takes the available green power first.
    A positive battery power means the battery is discharging.

    Parameters
    ----------
    pv_power : float
        Current PV power (W).
    battery_power : float
        Current battery power (W).
    power_from, power_to : float
        Band limits (W), 0 <= power_from <= power_to.

    Returns
    -------
    float
        Share in [0, 1].
    """
    if power_to < power_from:
        raise ValueError("power_to must not be below power_from")

    green_power = max(0.0, pv_power) + max(0.0, battery_power)
    green_available = max(0.0, green_power - power_from)

    power = power_to - power_from
    if power == 0:
        # zero-width band
        return 1.0 if green_available > 0 else 0.0

    return min(green_available, power) / power


def effective_price(grid, feed_in, share, at=None):
    """
    Price of energy mixed from grid import and self-produced energy.

    Self-produced energy is valued at the feed-in price it could have earned,
    or free without a readable feed-in tariff. Returns None when the grid
    price is unavailable.
    """
    try:
        grid_price = now(grid, at)
    except RateNotAvailable:
        return None

    try:
        feed_in_price = now(feed_in, at)
    except RateNotAvailable:
        feed_in_price = 0.0

    return grid_price * (1 - share) + feed_in_price * share


def effective_co2(co2, share, at=None):
    """CO2 intensity of the mix, self-produced energy counts as zero-carbon."""
    try:
        intensity = now(co2, at)
    except RateNotAvailable:
        return None
    return intensity * (1 - share)
