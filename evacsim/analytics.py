"""
Analytics Collection and Computation
Tracks evacuation progress, computes egress KPIs, exports time series
"""

import numpy as np
from typing import List, Dict, Optional
import csv
from pathlib import Path


class AnalyticsCollector:
    """
    Collects and computes simulation analytics.
    """

    def __init__(self, config: dict = None):
        config = config or {}
        self.enabled = config.get('enabled', True)
        self.sampling_rate = config.get('sampling_rate', 0.5)
        self.export_csv = config.get('export_csv', True)
        self.csv_path = config.get('csv_path', 'output/evacuation_analytics.csv')

        # Time series data
        self.timestamps = []
        self.active_counts = []
        self.exited_counts = []
        self.avg_speeds = []

        # Evacuation records: (agent_id, source space, time)
        self.evacuations: List[Dict] = []

        # KPIs
        self.kpis = {}

        # Last sampling time
        self.last_sample_time = 0.0

    @property
    def evacuation_times(self) -> List[float]:
        return [record['time'] for record in self.evacuations]

    def update(self, agents: List, current_time: float):
        """
        Sample metrics if the sampling interval has elapsed.

        Args:
            agents: List of all agents
            current_time: Current simulation time
        """
        if not self.enabled:
            return

        if current_time - self.last_sample_time >= self.sampling_rate:
            self._sample_metrics(agents, current_time)
            self.last_sample_time = current_time

    def _sample_metrics(self, agents: List, current_time: float):
        active_agents = [a for a in agents if not a.has_exited]

        self.timestamps.append(current_time)
        self.active_counts.append(len(active_agents))
        self.exited_counts.append(len(agents) - len(active_agents))

        if active_agents:
            self.avg_speeds.append(float(np.mean([a.speed for a in active_agents])))
        else:
            self.avg_speeds.append(0.0)

    def record_evacuation(self, agent_id: int, space_id: Optional[str], time: float):
        """Record an agent reaching its exit."""
        self.evacuations.append({'agent_id': agent_id, 'space_id': space_id, 'time': time})

    def room_clearance_times(self) -> Dict[str, float]:
        """Time at which the last occupant of each source room got out."""
        clearance = {}
        for record in self.evacuations:
            space_id = record['space_id']
            clearance[space_id] = max(clearance.get(space_id, 0.0), record['time'])
        return clearance

    def compute_kpis(self, total_agents: int, total_time: float) -> dict:
        """
        Compute Key Performance Indicators.

        Args:
            total_agents: Total number of agents
            total_time: Total simulation time
        """
        times = sorted(self.evacuation_times)
        n = len(times)

        self.kpis = {
            'total_agents': total_agents,
            'total_evacuated': n,
            'evacuation_rate': n / total_agents if total_agents > 0 else 0,
            'simulation_time': total_time,
        }

        for label, fraction in (('T50', 0.5), ('T80', 0.8), ('T90', 0.9), ('T95', 0.95)):
            self.kpis[label] = times[min(int(n * fraction), n - 1)] if n > 0 else None

        self.kpis['mean_evacuation_time'] = float(np.mean(times)) if n > 0 else None
        self.kpis['max_evacuation_time'] = max(times) if n > 0 else None
        self.kpis['room_clearance_times'] = self.room_clearance_times()

        if self.avg_speeds:
            self.kpis['mean_speed'] = float(np.mean(self.avg_speeds))

        return self.kpis

    def export_to_csv(self, csv_path: str = None) -> Optional[str]:
        """Export time series data to CSV; returns the path written."""
        if not self.timestamps:
            return None

        path = Path(csv_path or self.csv_path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w', newline='') as f:
            writer = csv.writer(f)
            writer.writerow(['Time', 'Active_Agents', 'Exited', 'Avg_Speed'])

            for i in range(len(self.timestamps)):
                writer.writerow([
                    f"{self.timestamps[i]:.2f}",
                    self.active_counts[i],
                    self.exited_counts[i],
                    f"{self.avg_speeds[i]:.3f}"
                ])

        return str(path)

    def generate_summary_report(self) -> str:
        """
        Generate text summary of simulation results.

        Returns:
            Formatted summary string
        """
        if not self.kpis:
            return "No analytics data available."

        report = []
        report.append("=" * 60)
        report.append("EVACUATION SIMULATION SUMMARY REPORT")
        report.append("=" * 60)
        report.append("")

        report.append("OVERALL STATISTICS:")
        report.append(f"  Total Agents: {self.kpis['total_agents']}")
        report.append(f"  Successfully Evacuated: {self.kpis['total_evacuated']}")
        report.append(f"  Evacuation Rate: {self.kpis['evacuation_rate']:.1%}")
        report.append(f"  Simulation Time: {self.kpis['simulation_time']:.1f}s")
        report.append("")

        if self.kpis['T50'] is not None:
            report.append("EVACUATION TIME PERCENTILES:")
            report.append(f"  T50 (50% evacuated): {self.kpis['T50']:.1f}s")
            report.append(f"  T80 (80% evacuated): {self.kpis['T80']:.1f}s")
            report.append(f"  T90 (90% evacuated): {self.kpis['T90']:.1f}s")
            report.append(f"  T95 (95% evacuated): {self.kpis['T95']:.1f}s")
            report.append(f"  Mean Evacuation Time: {self.kpis['mean_evacuation_time']:.1f}s")
            report.append(f"  Max Evacuation Time: {self.kpis['max_evacuation_time']:.1f}s")
            report.append("")

        if self.kpis['room_clearance_times']:
            report.append("ROOM CLEARANCE TIMES:")
            for space_id, time in sorted(self.kpis['room_clearance_times'].items(), key=lambda x: str(x[0])):
                report.append(f"  {space_id}: {time:.1f}s")
            report.append("")

        report.append("=" * 60)

        return "\n".join(report)
