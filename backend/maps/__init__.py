"""
Point maps: loading datasets onto a map surface, with grouping, filters,
a clickable legend and zoom-dependent marker radius.
"""
