from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='ActivityLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('activity_type', models.CharField(choices=[('created_task', 'Created task'), ('updated_task', 'Updated task'), ('deleted_task', 'Deleted task'), ('created_project', 'Created project'), ('updated_project', 'Updated project'), ('deleted_project', 'Deleted project'), ('updated_project_member', 'Updated project member'), ('submitted_task', 'Submitted task'), ('approved_task', 'Approved task'), ('rejected_task', 'Rejected task')], max_length=30)),
                ('description', models.TextField()),
                ('target_type', models.CharField(max_length=50)),
                ('target_id', models.BigIntegerField(blank=True, null=True)),
                ('timestamp', models.DateTimeField(auto_now_add=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='activities', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-timestamp', '-id'],
                'indexes': [models.Index(fields=['user', 'timestamp'], name='activity_user_time_idx')],
            },
        ),
    ]
