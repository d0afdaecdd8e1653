import argparse
import logging

import src.puck_sim.config as cfg
from src.puck_sim.advisory import summarize
from src.puck_sim.baskets import DEFAULT_BASKET_ID, all_baskets
from src.puck_sim.params import BrewParameters
from src.puck_sim.physics import ergun_pressure_drop, water_viscosity
from src.puck_sim.simulate import simulate


def parse_args(argv=None) -> argparse.Namespace:
    defaults = BrewParameters()
    ap = argparse.ArgumentParser(description="Steady-state espresso puck flow simulation")
    ap.add_argument("--basket", default=DEFAULT_BASKET_ID, choices=[b.id for b in all_baskets()])
    ap.add_argument("--grind", type=float, default=defaults.grind_size_microns, help="grind size [um]")
    ap.add_argument("--dose", type=float, default=None, help="dose [g], basket nominal if omitted")
    ap.add_argument("--tamp", type=float, default=defaults.tamp_pressure_kg, help="tamp force [kg]")
    ap.add_argument("--density", type=float, default=defaults.bean_density, help="bean density [g/cm3]")
    ap.add_argument("--moisture", type=float, default=defaults.moisture_content)
    ap.add_argument("--pressure", type=float, default=defaults.brew_pressure_bar, help="brew pressure [bar]")
    ap.add_argument("--temp", type=float, default=defaults.water_temp_c, help="water temperature [degC]")
    ap.add_argument("--distribution", type=float, default=defaults.distribution_quality)
    ap.add_argument("--rows", type=int, default=cfg.GRID_ROWS)
    ap.add_argument("--cols", type=int, default=cfg.GRID_COLS)
    ap.add_argument("--red-black", action="store_true", help="checkerboard SOR ordering")
    ap.add_argument("--verbose", "-v", action="store_true")
    return ap.parse_args(argv)


def make_params(args: argparse.Namespace) -> BrewParameters:
    params = BrewParameters(
        grind_size_microns=args.grind,
        tamp_pressure_kg=args.tamp,
        bean_density=args.density,
        moisture_content=args.moisture,
        brew_pressure_bar=args.pressure,
        water_temp_c=args.temp,
        distribution_quality=args.distribution,
    ).for_basket(args.basket)
    if args.dose is not None:
        params = params.with_changes(dose_grams=args.dose)
    return params


def main(argv=None):
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    params = make_params(args)
    for name in params.out_of_range():
        logging.getLogger(__name__).warning("%s=%s is outside the usual range %s",
                                            name, getattr(params, name), cfg.PARAM_RANGES[name])

    res = simulate(params, args.rows, args.cols, ordering="red_black" if args.red_black else "lexicographic")
    s = summarize(params, res)

    print("Basket:", s["basket"], "| puck height: %.1f mm" % s["puck_height_mm"],
          "| porosity: %.1f%%" % (s["porosity"] * 100))
    print("Flow rate: %.3g ml/s" % s["flow_rate_ml_s"], "| pressure drop: %.2f bar" % s["pressure_drop_bar"])
    print("Channeling risk: %.0f%% (%s)" % (s["channeling_risk"] * 100, s["risk_level"]),
          "| uniformity: %.0f%%" % (s["uniformity"] * 100))
    print("Est. shot time: %.1f s" % s["shot_time_s"], "(in window)" if s["shot_time_in_window"] else "")
    print("Channel cells:", s["channels"], "| SOR sweeps:", s["sor_sweeps"], "converged:", s["converged"])
    print(s["advice"])

    # Ergun check at the simulated superficial velocity
    area_m2 = params.basket.cross_section_cm2 * 1e-4
    v_sup = res.total_flow_rate * 1e-6 / area_m2
    mu = water_viscosity(params.water_temp_c)
    grad = ergun_pressure_drop(v_sup, params.particle_diameter_m, params.porosity, mu)
    print("Ergun dP over puck at that velocity: %.3g bar" % (grad * params.puck_height_mm / 1000.0 / cfg.PA_PER_BAR))


if __name__ == "__main__":
    main()
