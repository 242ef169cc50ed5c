"""CeylonBooking availability, pricing and booking API."""
