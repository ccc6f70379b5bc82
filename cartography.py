import logging
from dataclasses import dataclass, field
from typing import Optional

from aggregation import count_by, sum_by
from models import NOT_AVAILABLE, label, ACTIVITY_TYPE_LABELS, ACTIVITY_STATUS_LABELS

logger = logging.getLogger(__name__)

MARKER_STYLES = {
    "training": ("🎓", "#3498db"),
    "workshop": ("🛠️", "#9b59b6"),
    "awareness": ("📢", "#e74c3c"),
    "support": ("🤝", "#27ae60"),
    "advocacy": ("⚖️", "#f39c12"),
}
DEFAULT_MARKER_STYLE = ("📍", "#34495e")

DIRECTIONS_URL = "https://www.google.com/maps/dir/?api=1&destination={lat},{lon}"


@dataclass
class Marker:
    activity_id: str
    latitude: float
    longitude: float
    icon: str
    color: str
    popup: dict
    detail_url: str
    directions_url: str


@dataclass
class MapView:
    center: tuple
    zoom: int
    bounds: Optional[tuple] = None  # ((south, west), (north, east))


@dataclass
class MapLayer:
    center: tuple
    zoom: int
    markers: list = field(default_factory=list)
    view: Optional[MapView] = None

    def __post_init__(self):
        if self.view is None:
            self.view = MapView(center=tuple(self.center), zoom=self.zoom)

    @staticmethod
    def filter_activities(activities, project_id=None, activity_type=None):
        out = []
        for a in activities:
            if project_id and str(a.project_id) != str(project_id):
                continue
            if activity_type and a.type != activity_type:
                continue
            out.append(a)
        return out

    def clear(self):
        self.markers = []

    def refresh_markers(self, activities, project_names=None, detail_url=None):
        """Replace every marker with one per geocoded activity and refit the view."""
        project_names = project_names or {}
        markers = [
            self._marker(a, project_names, detail_url) for a in activities if a.has_coordinates
        ]
        view = self.view_for(markers)
        # single assignment, the layer is shared across request threads
        self.markers, self.view = markers, view
        logger.debug("Map refreshed with %d markers", len(markers))
        return markers

    def view_for(self, markers):
        """Bounds fitted to the markers; the current view when there are none."""
        return self._fit(markers) if markers else self.view

    def _marker(self, activity, project_names, detail_url):
        icon, color = MARKER_STYLES.get(activity.type, DEFAULT_MARKER_STYLE)
        popup = {
            "name": activity.name,
            "type": label(activity.type, ACTIVITY_TYPE_LABELS),
            "project": project_names.get(str(activity.project_id), NOT_AVAILABLE),
            "date": activity.activity_date.isoformat() if activity.activity_date else "",
            "location": activity.location,
            "beneficiaries": activity.beneficiary_count or 0,
            "status": label(activity.status, ACTIVITY_STATUS_LABELS),
            "responsible": activity.responsible or "",
        }
        return Marker(
            activity_id=str(activity.id),
            latitude=activity.latitude,
            longitude=activity.longitude,
            icon=icon,
            color=color,
            popup=popup,
            detail_url=detail_url(activity) if detail_url else "",
            directions_url=DIRECTIONS_URL.format(lat=activity.latitude, lon=activity.longitude),
        )

    def _fit(self, markers, pad=0.1):
        lats = [m.latitude for m in markers]
        lons = [m.longitude for m in markers]
        south, north = min(lats), max(lats)
        west, east = min(lons), max(lons)
        dlat = (north - south) * pad
        dlon = (east - west) * pad
        bounds = ((south - dlat, west - dlon), (north + dlat, east + dlon))
        center = ((south + north) / 2, (west + east) / 2)
        return MapView(center=center, zoom=self.view.zoom, bounds=bounds)


def map_stats(activities):
    return {
        "displayed": len(activities),
        "beneficiaries": sum_by(activities, "beneficiary_count"),
        "by_type": {
            label(k, ACTIVITY_TYPE_LABELS): v for k, v in count_by(activities, "type").items()
        },
    }
