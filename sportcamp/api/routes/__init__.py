"""Route modules; each exposes an `APIRouter` named `router`."""
