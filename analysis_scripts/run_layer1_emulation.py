import sys

import numpy as np

from calotrig.layer1.layer1 import fill_layer1
from calotrig.layer1.plotting import plot_region_et_map, plot_tower_et_map
from calotrig.layer1_config import build_layer1, get_config_for_run
from calotrig.utils.parallel_events import process_events_parallel, process_events_serial
from calotrig.utils.root_io import iterate_tower_inputs, open_events_tree


# Input file with ecalTPs_* / hcalTPs_* branches and the run it was taken in
input_file = "layer1_inputs.root"
run_number = 299800

#input_file = "layer1_inputs_2016.root"
#run_number = 276000

max_events = 1000
use_parallel = True


def emulate_file(input_file, run_number, max_events, use_parallel):
    tree, error = open_events_tree(input_file)
    if tree is None:
        print(f"Error: {error}")
        return None

    config = get_config_for_run(run_number)
    print(f"Run {run_number}: using configuration {config.name} (firmware version {int(config.fw_version)})")

    n_events = min(max_events, int(tree.num_entries))
    events = [inputs for _, inputs in iterate_tower_inputs(tree, range(n_events))]
    print(f"Read {len(events)} events from {input_file}")

    if use_parallel:
        results = process_events_parallel(events, config=config)
    else:
        results = process_events_serial(events, config=config)

    summaries = np.array([r['summary'] for r in results if r is not None])
    print(f"Processed events: {len(summaries)}/{len(events)}")
    if len(summaries):
        print(f"Summary ET: mean = {summaries.mean():.1f}, max = {summaries.max()}")

    # Event display for the hottest event
    if len(events):
        hottest = int(np.argmax([r['summary'] if r is not None else -1 for r in results]))
        layer = build_layer1(config)
        layer.clear_event()
        fill_layer1(layer, events[hottest])
        layer.process()
        print(layer)
        plot_tower_et_map(layer, output_file=f"layer1_towers_event{hottest}.png")
        plot_region_et_map(layer, output_file=f"layer1_regions_event{hottest}.png")

    return results


if __name__ == "__main__":
    if len(sys.argv) > 1:
        input_file = sys.argv[1]
    if len(sys.argv) > 2:
        run_number = int(sys.argv[2])
    emulate_file(input_file, run_number, max_events, use_parallel)
