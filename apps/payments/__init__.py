"""Payment processor client used by the reservation flow."""
