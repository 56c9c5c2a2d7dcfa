"""Ports - interfaces between the marketplace core and the outside world."""
