from alchemist.models.sample import InstrumentLabel, SampleType

# Raw classifier label → sample category shown in the library
INSTRUMENT_TO_SAMPLE_TYPE = {
    InstrumentLabel.kick: SampleType.kick,
    InstrumentLabel.snare: SampleType.snare,
    InstrumentLabel.hihat: SampleType.hihat,
    InstrumentLabel.bass: SampleType.bass,
    InstrumentLabel.piano: SampleType.melody,
    InstrumentLabel.guitar: SampleType.melody,
    InstrumentLabel.synth: SampleType.melody,
    InstrumentLabel.other: SampleType.other,
}

# Display names used in generated sample names ("Kick Sample 1")
INSTRUMENT_NAMES = {label: label.value.capitalize() for label in InstrumentLabel}


def to_sample_type(label: str) -> SampleType:
    """Map a raw instrument label to its category; unknown labels become ``other``."""
    try:
        return INSTRUMENT_TO_SAMPLE_TYPE[InstrumentLabel(label)]
    except ValueError:
        return SampleType.other
