from .control import LegendControl, LegendEntry, LegendOptions, circle_symbol_svg

__all__ = ["LegendControl", "LegendEntry", "LegendOptions", "circle_symbol_svg"]
