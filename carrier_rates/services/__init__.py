# Services layer: rate shopping and the public facade
