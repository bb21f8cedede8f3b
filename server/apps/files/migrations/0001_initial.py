import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='File',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('file', models.FileField(help_text='Key in storage: uploads/YYYY/MM/DD/<timestamp>.<ext>', max_length=512, unique=True, upload_to='')),
                ('original_name', models.CharField(help_text='Filename as supplied by the uploader', max_length=255)),
                ('size_bytes', models.BigIntegerField(help_text='File size in bytes')),
                ('mime_type', models.CharField(max_length=255)),
                ('share_token', models.CharField(blank=True, default=None, max_length=64, null=True, unique=True)),
                ('expires_at', models.DateTimeField(blank=True, db_index=True, help_text='Empty means the file never expires', null=True)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('active', 'Active')], db_index=True, default='pending', max_length=16)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('modified_at', models.DateTimeField(auto_now=True)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='files', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'File',
                'verbose_name_plural': 'Files',
                'ordering': ['-created_at'],
                'base_manager_name': 'all_objects',
                'indexes': [models.Index(fields=['user', '-created_at'], name='files_user_recent_idx')],
            },
            managers=[
                ('objects', models.Manager()),
                ('all_objects', models.Manager()),
            ],
        ),
    ]
